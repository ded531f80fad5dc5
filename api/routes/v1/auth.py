"""
api/routes/v1/auth.py -- Registration, login and self-service profile endpoints.

Routes:
  POST  /api/v1/auth/register   -- create a member account; 201, no token
  POST  /api/v1/auth/login      -- email/password -> bearer token
  GET   /api/v1/auth/me         -- current user info (requires auth)
  PATCH /api/v1/auth/me         -- change own name/email (requires auth)

Security:
  [H2] POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  [C1] AuthService.login() provides timing equalization -- use it, never inline
       get_by_email() + verify().
  [M5] Cache-Control: no-store on login responses.

Domain failures (DuplicateEmail, InvalidCredentials, ...) propagate as
auth.errors exceptions; api/main.py maps them to status codes. Handlers that
hash passwords are plain `def` so bcrypt runs in the threadpool instead of
blocking the event loop.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import LoginRequest, LoginResponse, ProfilePatch, RegisterRequest, RegisterResponse, UserResponse
from auth.dependencies import get_auth_context
from auth.models import AuthContext
from auth.service import AuthService

# Auth policy:
# - POST  /api/v1/auth/register:  public
# - POST  /api/v1/auth/login:     public -- login endpoint must be unauthenticated
# - GET   /api/v1/auth/me:        requires auth (get_auth_context)
# - PATCH /api/v1/auth/me:        requires auth (get_auth_context)
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create a member account. The role is always member; log in separately for a token."""
    user = _service(request).register(body.email, body.name, body.password)
    return RegisterResponse(user=UserResponse.from_user(user))


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # [H2] under @router so the registered endpoint is the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the user and a bearer token.

    Unknown email and wrong password produce the same 401 body
    ("invalid_credentials") so the response does not reveal which accounts exist.
    """
    result = _service(request).login(body.email, body.password)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user=UserResponse.from_user(result.user),
            token=result.token,
            expires_in=result.expires_in,
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=UserResponse)
async def me(context: AuthContext = Depends(get_auth_context)) -> UserResponse:
    """Return the live record of the authenticated user."""
    return UserResponse.from_user(context.user)


@router.patch("/auth/me", response_model=UserResponse)
def update_me(
    request: Request,
    body: ProfilePatch,
    context: AuthContext = Depends(get_auth_context),
) -> UserResponse:
    """Change the caller's own display name and/or email. Role is not editable here."""
    if body.name is None and body.email is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    updated = _service(request).update_profile(context.user.id, name=body.name, email=body.email)
    return UserResponse.from_user(updated)
