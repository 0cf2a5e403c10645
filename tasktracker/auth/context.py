"""
Request context - the "who is calling" for each request.

This is the immutable value passed from the auth pipeline into route
handlers and resource services. Each pipeline stage returns a new
context instead of mutating the request.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from fastapi import Request

from tasktracker.auth.tokens import AccessClaims
from tasktracker.core.models import Role, User


@dataclass(frozen=True)
class RequestContext:
    """
    Authentication state for one request.

    Usage in routes:
        async def my_route(ctx: RequestContext = Depends(require_auth())):
            print(f"User {ctx.principal_id} is calling")
    """

    # Raw input
    authorization: str | None = None

    # Filled in by the pipeline
    token: str | None = None
    claims: AccessClaims | None = None
    principal: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.principal is not None

    @property
    def is_anonymous(self) -> bool:
        return self.principal is None

    @property
    def principal_id(self) -> str | None:
        return self.principal.id if self.principal else None

    @property
    def role(self) -> str | None:
        return self.principal.role if self.principal else None

    @property
    def is_admin(self) -> bool:
        return self.principal is not None and self.principal.role == Role.ADMIN

    def evolve(self, **changes) -> RequestContext:
        return replace(self, **changes)

    @classmethod
    def anonymous(cls) -> RequestContext:
        return cls()

    @classmethod
    def for_principal(cls, user: User) -> RequestContext:
        """Context for an already-loaded user (internal calls and tests)."""
        return cls(principal=user)

    @classmethod
    def from_request(cls, request: Request) -> RequestContext:
        return cls(authorization=request.headers.get("authorization"))
