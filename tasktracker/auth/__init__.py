"""
Authentication and authorization.

Design principles:
1. One FastAPI dependency per route decides who is calling
2. Each check is a pipeline stage returning a new RequestContext
3. Tokens are stateless; access and refresh kinds use separate secrets
4. Ownership stays with the resource services
"""

from tasktracker.auth.context import RequestContext
from tasktracker.auth.passwords import PasswordHasher, hash_password, verify_password
from tasktracker.auth.pipeline import Stage, run_pipeline
from tasktracker.auth.policies import (
    AuthMode,
    Policy,
    optional_auth,
    require_auth,
    require_role,
)
from tasktracker.auth.tokens import AccessClaims, RefreshClaims, TokenPair, TokenService

__all__ = [
    # Main interface
    "require_auth",
    "optional_auth",
    "require_role",
    "RequestContext",
    # Pipeline
    "AuthMode",
    "Policy",
    "Stage",
    "run_pipeline",
    # Tokens
    "AccessClaims",
    "RefreshClaims",
    "TokenPair",
    "TokenService",
    # Passwords
    "PasswordHasher",
    "hash_password",
    "verify_password",
]
