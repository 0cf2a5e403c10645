"""
Policies - the interface for route authentication and authorization.

Just use: `ctx: RequestContext = Depends(require_auth())`

Design:
- A Policy is an ordered list of pipeline stages:
  extract_bearer -> verify_access -> load_principal [-> check_roles]
- `require_auth()`, `optional_auth()` and `require_role()` wrap a
  Policy into a FastAPI dependency that resolves to RequestContext
- Role checks always run after the principal is loaded and found active
- Ownership is not decided here; resource services do that
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable

from fastapi import Request

from tasktracker.auth.context import RequestContext
from tasktracker.auth.pipeline import Stage, run_pipeline
from tasktracker.auth.tokens import TokenService
from tasktracker.core.errors import (
    AuthError,
    InsufficientPermissionsError,
    MissingTokenError,
    PrincipalUnavailableError,
)
from tasktracker.core.models import Role, User

logger = logging.getLogger(__name__)


PrincipalLookup = Callable[[str], Awaitable[User | None]]


class AuthMode(str, Enum):
    REQUIRED = "required"
    OPTIONAL = "optional"


# =============================================================================
# Stages
# =============================================================================


def extract_bearer() -> Stage:
    """Pull the token out of `Authorization: Bearer <token>`."""

    async def stage(ctx: RequestContext) -> RequestContext:
        scheme, _, token = (ctx.authorization or "").partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise MissingTokenError()
        return ctx.evolve(token=token)

    return stage


def verify_access(tokens: TokenService) -> Stage:
    """Check signature, expiry, issuer and audience of the access token."""

    async def stage(ctx: RequestContext) -> RequestContext:
        if not ctx.token:
            raise MissingTokenError()
        return ctx.evolve(claims=tokens.verify_access_token(ctx.token))

    return stage


def load_principal(lookup: PrincipalLookup) -> Stage:
    """Load the account named by the token; it must exist and be active."""

    async def stage(ctx: RequestContext) -> RequestContext:
        if ctx.claims is None:
            raise MissingTokenError()
        user = await lookup(ctx.claims.principal_id)
        if user is None:
            raise PrincipalUnavailableError.not_found()
        if not user.is_active:
            raise PrincipalUnavailableError.inactive()
        return ctx.evolve(principal=user)

    return stage


def check_roles(roles: Iterable[Role | str]) -> Stage:
    """Reject principals whose role is not in `roles`."""
    allowed = {Role(r).value for r in roles}

    async def stage(ctx: RequestContext) -> RequestContext:
        if ctx.principal is None:
            raise AuthError()
        if ctx.principal.role not in allowed:
            raise InsufficientPermissionsError(
                requiredRoles=sorted(allowed),
                userRole=ctx.principal.role,
            )
        return ctx

    return stage


# =============================================================================
# Policy
# =============================================================================


class Policy:
    """
    How a route authenticates its caller.

        Policy()                              # required
        Policy(mode=AuthMode.OPTIONAL)        # anonymous allowed
        Policy(roles=[Role.ADMIN])            # required + role-gated
    """

    def __init__(
        self,
        mode: AuthMode = AuthMode.REQUIRED,
        roles: Iterable[Role | str] | None = None,
    ):
        self.mode = mode
        self.roles = list(roles or [])
        if self.roles and mode == AuthMode.OPTIONAL:
            raise ValueError("Role-gated policies must require authentication")

    def stages(self, tokens: TokenService, lookup: PrincipalLookup) -> list[Stage]:
        stages = [extract_bearer(), verify_access(tokens), load_principal(lookup)]
        if self.roles:
            stages.append(check_roles(self.roles))
        return stages

    async def resolve(
        self,
        ctx: RequestContext,
        tokens: TokenService,
        lookup: PrincipalLookup,
    ) -> RequestContext:
        try:
            return await run_pipeline(ctx, self.stages(tokens, lookup))
        except AuthError as e:
            if self.mode == AuthMode.OPTIONAL:
                return ctx
            logger.info(f"Authentication failed: {e.code}")
            raise
        except InsufficientPermissionsError as e:
            logger.info(f"Permission denied for role {e.extra.get('userRole')}")
            raise


# =============================================================================
# Main Interface
# =============================================================================


def require_auth() -> Callable:
    """Caller must present a valid access token for an active account."""
    return _create_dependency(Policy())


def optional_auth() -> Callable:
    """Attach the caller if the token checks out, otherwise stay anonymous."""
    return _create_dependency(Policy(mode=AuthMode.OPTIONAL))


def require_role(*roles: Role | str) -> Callable:
    """
    Require authentication and one of `roles`.

    Usage:
        @router.get("/users")
        async def list_users(ctx: RequestContext = Depends(require_role(Role.ADMIN))):
            ...
    """
    return _create_dependency(Policy(roles=roles))


def _create_dependency(policy: Policy) -> Callable:
    """Create a FastAPI dependency from a policy."""

    async def dependency(request: Request) -> RequestContext:
        state = request.app.state
        return await policy.resolve(
            RequestContext.from_request(request),
            tokens=state.tokens,
            lookup=state.users.get_by_id,
        )

    return dependency
