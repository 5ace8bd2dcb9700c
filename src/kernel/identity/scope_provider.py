"""
Scope provider - turns a bearer token into the caller's Principal.
"""

import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.engines.policy.errors import ForbiddenError
from src.engines.policy.types import Principal
from src.kernel.identity.jwt import verify_access_token
from src.kernel.models.user import User, UserRole


class AuthenticationError(Exception):
    """Credentials missing, invalid, or pointing at an unknown user."""


class ScopeProvider:
    """
    Resolves principals from credentials.

    The token only identifies the user; role and academic scope always come
    from the users table so a role change takes effect immediately.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    def principal_for(user: User) -> Principal:
        return Principal(
            id=user.id,
            role=UserRole(user.role),
            home_track_id=user.home_track_id,
            home_level_id=user.home_level_id,
        )

    async def resolve_principal(self, token: str) -> Principal:
        """
        Verify ``token`` and load the caller's scope.

        Raises:
            AuthenticationError: Invalid token or unknown user
            ForbiddenError: Account disabled
        """
        payload = verify_access_token(token)
        if payload is None:
            raise AuthenticationError("Invalid or expired token")

        try:
            user_id = uuid.UUID(payload.sub)
        except ValueError as exc:
            raise AuthenticationError("Invalid or expired token") from exc

        user = await self.get_user(user_id)
        if user is None:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise ForbiddenError("User account is disabled")

        return self.principal_for(user)
