"""
Response envelope.

Every endpoint answers with
    {success, message?, code?, data?, errors?}
Errors are shaped by AppError.to_dict(); successes go through envelope().
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse
from starlette.responses import Response

from tasktracker.config import Settings


def envelope(
    data: dict[str, Any] | None = None,
    message: str | None = None,
    status_code: int = 200,
) -> JSONResponse:
    """Successful response wrapped in the standard envelope."""
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    return JSONResponse(body, status_code=status_code)


# =============================================================================
# Refresh cookie
# =============================================================================


def set_refresh_cookie(response: Response, token: str, settings: Settings) -> None:
    """Refresh tokens only ever travel in this cookie, never in JSON."""
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        max_age=settings.refresh_cookie_max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )


def clear_refresh_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.refresh_cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
        path="/",
    )
