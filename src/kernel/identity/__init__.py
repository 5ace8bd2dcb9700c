"""
Identity Core - token verification and principal resolution.
"""

from src.kernel.identity.jwt import (
    JWTManager,
    AccessTokenPayload,
    create_access_token,
    verify_access_token,
)
from src.kernel.identity.scope_provider import AuthenticationError, ScopeProvider

__all__ = [
    "JWTManager",
    "AccessTokenPayload",
    "create_access_token",
    "verify_access_token",
    "AuthenticationError",
    "ScopeProvider",
]
