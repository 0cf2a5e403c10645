# =============================================================================
# JWT Token Service
# =============================================================================
#
# Two token kinds, each signed with its own secret:
#   - access:  short-lived, carries sub + email + role
#   - refresh: long-lived, carries sub only, travels in an http-only cookie
#
# Validity is purely signature + claims (issuer, audience, expiry, type).
# Nothing is stored server-side, so any process can verify any token.
#
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from pydantic import BaseModel

from tasktracker.config import Settings
from tasktracker.core.errors import ExpiredTokenError, InvalidTokenError
from tasktracker.core.models import Role, User
from tasktracker.core.utils import generate_id, utc_now

logger = logging.getLogger(__name__)


ACCESS = "access"
REFRESH = "refresh"


# =============================================================================
# Models
# =============================================================================


class AccessClaims(BaseModel):
    """Verified access token payload."""
    sub: str  # principal id
    email: str
    role: Role
    exp: datetime
    iat: datetime
    jti: str

    @property
    def principal_id(self) -> str:
        return self.sub


class RefreshClaims(BaseModel):
    """Verified refresh token payload."""
    sub: str
    exp: datetime
    iat: datetime
    jti: str

    @property
    def principal_id(self) -> str:
        return self.sub


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    expires_in: int  # seconds until access token expires


# =============================================================================
# Service
# =============================================================================


class TokenService:
    """
    Mints and verifies access and refresh tokens.

    Usage:
        tokens = TokenService(settings)
        pair = tokens.issue_token_pair(user)
        claims = tokens.verify_access_token(pair.access_token)
    """

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utc_now):
        self.access_secret = settings.jwt_access_secret
        self.refresh_secret = settings.jwt_refresh_secret
        self.algorithm = settings.jwt_algorithm
        self.issuer = settings.jwt_issuer
        self.audience = settings.jwt_audience
        self.access_ttl = timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=settings.refresh_token_expire_days)
        self.clock = clock

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def _encode(self, claims: dict, secret: str, ttl: timedelta) -> str:
        now = self.clock()
        payload = {
            **claims,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "exp": now + ttl,
            "jti": generate_id(),
        }
        return jwt.encode(payload, secret, algorithm=self.algorithm)

    def create_access_token(self, user: User) -> str:
        """Create an access token from the user's current state."""
        return self._encode(
            {"sub": user.id, "email": user.email, "role": user.role, "type": ACCESS},
            self.access_secret,
            self.access_ttl,
        )

    def create_refresh_token(self, user: User) -> str:
        """Create a refresh token (longer-lived, identity only)."""
        return self._encode(
            {"sub": user.id, "type": REFRESH},
            self.refresh_secret,
            self.refresh_ttl,
        )

    def issue_token_pair(self, user: User) -> TokenPair:
        """Create both access and refresh tokens."""
        return TokenPair(
            access_token=self.create_access_token(user),
            refresh_token=self.create_refresh_token(user),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _decode(self, token: str, secret: str, expected_type: str) -> dict:
        """
        Decode and validate a JWT.

        Raises:
            ExpiredTokenError: Token has expired
            InvalidTokenError: Bad signature, malformed, wrong issuer,
                audience or kind
        """
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iat", "sub", "iss", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected {expected_type} token: {e}")
            raise InvalidTokenError()

        if payload.get("type") != expected_type:
            raise InvalidTokenError(f"Expected {expected_type} token")
        return payload

    @staticmethod
    def _timestamps(payload: dict) -> dict:
        return {
            "exp": datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            "iat": datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        }

    def verify_access_token(self, token: str) -> AccessClaims:
        payload = self._decode(token, self.access_secret, ACCESS)
        try:
            return AccessClaims(
                sub=payload["sub"],
                email=payload["email"],
                role=payload["role"],
                jti=payload.get("jti", ""),
                **self._timestamps(payload),
            )
        except (KeyError, ValueError):
            raise InvalidTokenError()

    def verify_refresh_token(self, token: str) -> RefreshClaims:
        payload = self._decode(token, self.refresh_secret, REFRESH)
        return RefreshClaims(
            sub=payload["sub"],
            jti=payload.get("jti", ""),
            **self._timestamps(payload),
        )

    def refresh_access_token(self, refresh_token: str, user: User) -> str:
        """
        Mint a new access token for `user` from a valid refresh token.

        Claims come from the user as loaded now, not from anything cached
        in the refresh token, so role and email changes take effect.
        """
        claims = self.verify_refresh_token(refresh_token)
        if claims.sub != user.id:
            raise InvalidTokenError("Refresh token does not belong to this user")
        return self.create_access_token(user)
