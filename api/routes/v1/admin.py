"""
api/routes/v1/admin.py -- Member administration endpoints (admin role only).

Routes:
  GET    /api/v1/admin/users          -- page through users, newest first
  GET    /api/v1/admin/users/{id}     -- one user
  PATCH  /api/v1/admin/users/{id}     -- change name/email/role
  DELETE /api/v1/admin/users/{id}     -- permanently delete a user

Every route depends on require_admin, which runs the authentication gate
and then the exact-match role gate. A member token gets 403; no token gets 401.

[M4] An admin cannot delete their own account or demote themselves. Either
     would leave a club with no admin if they were the last one, and there is
     no recovery path without database access.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.models import UserPatch, UserResponse
from auth.dependencies import require_admin
from auth.models import AuthContext, Role
from auth.service import AuthService

router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.get("/admin/users", response_model=list[UserResponse])
async def list_users(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    context: AuthContext = Depends(require_admin),
) -> list[UserResponse]:
    users = _service(request).list_users(limit=limit, offset=offset)
    return [UserResponse.from_user(u) for u in users]


@router.get("/admin/users/{user_id}", response_model=UserResponse)
async def get_user(
    request: Request,
    user_id: str,
    context: AuthContext = Depends(require_admin),
) -> UserResponse:
    return UserResponse.from_user(_service(request).get_user(user_id))


@router.patch("/admin/users/{user_id}", response_model=UserResponse)
async def update_user(
    request: Request,
    user_id: str,
    body: UserPatch,
    context: AuthContext = Depends(require_admin),
) -> UserResponse:
    """Update a user's profile fields and/or role. Admin only."""
    if body.name is None and body.email is None and body.role is None:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    # [M4] Block self-demotion
    if body.role is not None and body.role != Role.admin and user_id == context.user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_demotion", "message": "You cannot remove your own admin role."},
        )

    updated = _service(request).update_user(user_id, name=body.name, email=body.email, role=body.role)
    return UserResponse.from_user(updated)


@router.delete("/admin/users/{user_id}", status_code=204)
async def delete_user(
    request: Request,
    user_id: str,
    context: AuthContext = Depends(require_admin),
) -> Response:
    """Permanently delete a user. Tokens already issued to them stop working immediately."""
    # [M4] Block self-deletion
    if user_id == context.user.id:
        raise HTTPException(
            status_code=400,
            detail={"code": "self_deletion", "message": "You cannot delete your own account."},
        )
    _service(request).delete_user(user_id)
    return Response(status_code=204)
