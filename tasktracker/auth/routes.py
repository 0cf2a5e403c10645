# =============================================================================
# Auth API Routes
# =============================================================================
#
# Endpoints:
#   POST /api/auth/register  - Create account, set refresh cookie
#   POST /api/auth/login     - Check credentials, set refresh cookie
#   POST /api/auth/logout    - Clear refresh cookie
#   POST /api/auth/refresh   - New access token from the refresh cookie
#   GET  /api/auth/profile   - Current user
#
# Refresh tokens never appear in a response body; only the cookie
# carries them.
#
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request

from tasktracker.api.deps import get_app_settings, get_tokens, get_users
from tasktracker.api.responses import clear_refresh_cookie, envelope, set_refresh_cookie
from tasktracker.auth.context import RequestContext
from tasktracker.auth.policies import require_auth
from tasktracker.auth.tokens import TokenService
from tasktracker.config import Settings
from tasktracker.core.errors import MissingRefreshTokenError, PrincipalUnavailableError
from tasktracker.core.models import User, UserResponse
from tasktracker.services import UserService
from tasktracker.validation import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_response(
    user: User,
    tokens: TokenService,
    settings: Settings,
    message: str,
    status_code: int = 200,
):
    pair = tokens.issue_token_pair(user)
    response = envelope(
        {"user": UserResponse.from_user(user).to_wire(), "accessToken": pair.access_token},
        message=message,
        status_code=status_code,
    )
    set_refresh_cookie(response, pair.refresh_token, settings)
    return response


# =============================================================================
# Public Endpoints
# =============================================================================


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    users: UserService = Depends(get_users),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_app_settings),
):
    """
    Create a new account.

    Always a regular user; admins are made by other admins or bootstrap.
    """
    user = await users.register(data)
    return _session_response(
        user, tokens, settings, "User registered successfully", status_code=201
    )


@router.post("/login")
async def login(
    data: LoginRequest,
    users: UserService = Depends(get_users),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_app_settings),
):
    user = await users.authenticate(data.email, data.password)
    logger.info(f"User {user.id} logged in")
    return _session_response(user, tokens, settings, "Login successful")


@router.post("/logout")
async def logout(settings: Settings = Depends(get_app_settings)):
    """
    Clear the refresh cookie.

    Tokens are stateless; an access token stays valid until it expires.
    """
    response = envelope(message="Logout successful")
    clear_refresh_cookie(response, settings)
    return response


@router.post("/refresh")
async def refresh(
    request: Request,
    users: UserService = Depends(get_users),
    tokens: TokenService = Depends(get_tokens),
    settings: Settings = Depends(get_app_settings),
):
    """Mint a new access token from the refresh cookie and the current user."""
    refresh_token = request.cookies.get(settings.refresh_cookie_name)
    if not refresh_token:
        raise MissingRefreshTokenError()

    claims = tokens.verify_refresh_token(refresh_token)
    user = await users.get_by_id(claims.principal_id)
    if user is None or not user.is_active:
        raise PrincipalUnavailableError.not_found()

    access_token = tokens.refresh_access_token(refresh_token, user)
    return envelope({"accessToken": access_token}, message="Token refreshed successfully")


# =============================================================================
# Protected Endpoints
# =============================================================================


@router.get("/profile")
async def profile(ctx: RequestContext = Depends(require_auth())):
    return envelope({"user": UserResponse.from_user(ctx.principal).to_wire()})
