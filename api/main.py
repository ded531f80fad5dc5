"""
api/main.py -- FastAPI application entry point for Courtside.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. CORSMiddleware    -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware -- enforces per-route rate limits from api.limiter

Lifespan builds the auth components from Settings exactly once -- store,
hasher, token authority, then the service that ties them together -- and
disposes the store on shutdown. Nothing below the API layer reads Settings.

Error mapping: every auth.errors.AuthError is translated to a status code in
one handler (_STATUS_BY_ERROR). Clients only ever see the error kind and its
generic message, never the internal reason.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.admin import router as admin_router
from api.routes.v1.auth import router as auth_router
from auth.errors import (
    AuthError,
    DuplicateEmail,
    Forbidden,
    HashingFailure,
    InvalidCredentials,
    MalformedCredential,
    MissingCredential,
    NotFound,
    TokenError,
    Unauthenticated,
)
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenAuthority
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("courtside.api")

# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


def build_auth_service(settings: Settings, store: UserStore) -> AuthService:
    """Wire hasher and token authority from settings around an existing store."""
    return AuthService(
        store=store,
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        authority=TokenAuthority(
            settings.secret_key,
            ttl=timedelta(hours=settings.token_ttl_hours),
            issuer=settings.token_issuer,
        ),
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the user store, build the AuthService, bootstrap the admin; close the store on exit."""
    logger.info("Courtside API starting up")
    store = UserStore(_settings.database_url)
    app.state.auth_service = build_auth_service(_settings, store)
    logger.info(
        "Auth initialized (token_ttl_hours=%d, bcrypt_rounds=%d, users=%d)",
        _settings.token_ttl_hours,
        _settings.bcrypt_rounds,
        store.count(),
    )
    if _settings.admin_bootstrap_enabled:
        created = app.state.auth_service.ensure_admin(
            _settings.admin_email, _settings.admin_name, _settings.admin_password
        )
        if created is None:
            logger.info("Admin bootstrap skipped: email already registered")

    yield

    store.close()
    logger.info("Courtside API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Courtside API",
    description="Membership registration, login and role-gated administration.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter

# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. The Authorization header is never logged.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(admin_router, prefix="/api/v1", tags=["Admin"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Every error response is {"error": {"code", "message", "detail"}}.
# ---------------------------------------------------------------------------

# Checked in order; the first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[AuthError], int], ...] = (
    (MissingCredential, 401),
    (MalformedCredential, 401),
    (Unauthenticated, 401),
    (TokenError, 401),
    (InvalidCredentials, 401),
    (Forbidden, 403),
    (DuplicateEmail, 400),
    (NotFound, 404),
    (HashingFailure, 500),
)

_CHALLENGE_ERRORS = (MissingCredential, MalformedCredential, Unauthenticated, TokenError)


def status_for(exc: AuthError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Map a typed auth failure to its status code and generic message.

    The body carries exc.code and the class-level message only. 401s for
    bearer failures include WWW-Authenticate so clients know which scheme
    to retry with.
    """
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, _CHALLENGE_ERRORS) else None
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=exc.message)).model_dump(),
        headers=headers,
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation.

    Field locations and messages only -- the rejected input values are left
    out because they may include a password.
    """
    problems = "; ".join(".".join(str(p) for p in err["loc"]) + ": " + err["msg"] for err in exc.errors())
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=problems,
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap HTTPException in the error envelope.

    Route handlers raise HTTPException with detail={"code": ..., "message": ...}.
    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer anything unhandled with a generic 500.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Registered on the app itself, outside the versioned routers. Not rate limited.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and a database round-trip check."""
    database = "ok"
    try:
        with request.app.state.auth_service.store.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
