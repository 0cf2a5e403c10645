"""
User routes.

Self-service endpoints act on the caller's own account and are declared
before the `/{user_id}` routes so their paths win. Everything addressed
by id is admin-only.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from tasktracker.api.deps import get_app_settings, get_users
from tasktracker.api.responses import clear_refresh_cookie, envelope
from tasktracker.auth.context import RequestContext
from tasktracker.auth.policies import require_auth, require_role
from tasktracker.config import Settings
from tasktracker.core.models import Role, UserResponse
from tasktracker.services import UserService
from tasktracker.validation import (
    AdminUserUpdateRequest,
    PasswordChangeRequest,
    ProfileUpdateRequest,
    UserQuery,
    ensure_valid_id,
    validate,
)

router = APIRouter(prefix="/api/users", tags=["users"])

admin_only = require_role(Role.ADMIN)


# =============================================================================
# Self-service
# =============================================================================


@router.put("/profile")
async def update_profile(
    data: ProfileUpdateRequest,
    ctx: RequestContext = Depends(require_auth()),
    users: UserService = Depends(get_users),
):
    user = await users.update_profile(ctx, data)
    return envelope(
        {"user": UserResponse.from_user(user).to_wire()},
        message="Profile updated successfully",
    )


@router.put("/change-password")
async def change_password(
    data: PasswordChangeRequest,
    ctx: RequestContext = Depends(require_auth()),
    users: UserService = Depends(get_users),
):
    await users.change_password(ctx, data)
    return envelope(message="Password changed successfully")


@router.put("/deactivate")
async def deactivate(
    ctx: RequestContext = Depends(require_auth()),
    users: UserService = Depends(get_users),
    settings: Settings = Depends(get_app_settings),
):
    await users.deactivate(ctx)
    response = envelope(message="Account deactivated successfully")
    clear_refresh_cookie(response, settings)
    return response


# =============================================================================
# Admin
# =============================================================================


@router.get("")
async def list_users(
    request: Request,
    ctx: RequestContext = Depends(admin_only),
    users: UserService = Depends(get_users),
):
    query = validate(UserQuery, dict(request.query_params))
    found, pagination = await users.list_users(query)
    return envelope({
        "users": [UserResponse.from_user(u).to_wire() for u in found],
        "pagination": pagination.to_wire(),
    })


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    ctx: RequestContext = Depends(admin_only),
    users: UserService = Depends(get_users),
):
    user = await users.get_user(ensure_valid_id(user_id))
    return envelope({"user": UserResponse.from_user(user).to_wire()})


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: AdminUserUpdateRequest,
    ctx: RequestContext = Depends(admin_only),
    users: UserService = Depends(get_users),
):
    user = await users.update_user(ensure_valid_id(user_id), data)
    return envelope(
        {"user": UserResponse.from_user(user).to_wire()},
        message="User updated successfully",
    )


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    ctx: RequestContext = Depends(admin_only),
    users: UserService = Depends(get_users),
):
    await users.delete_user(ctx, ensure_valid_id(user_id))
    return envelope(message="User deleted successfully")
