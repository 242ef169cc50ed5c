"""User lookups for the booking request path."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..models.user import User, UserType

logger = logging.getLogger(__name__)


class UserService:
    """Service for user-related operations. Accounts are created elsewhere."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_user(
        self,
        email: str,
        full_name: str,
        user_type: UserType = UserType.TOURIST,
        country: Optional[str] = None,
    ) -> User:
        """Insert a user row; used by seeding scripts and tests."""
        user = User(
            email=email,
            full_name=full_name,
            user_type=user_type.value,
            country=country.upper() if country else None,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id_or_raise(self, user_id: UUID) -> User:
        """Get user by ID or raise NotFoundError."""
        user = await self.get_user_by_id(user_id)
        if not user:
            logger.warning(
                "User not found",
                extra={"user_id": str(user_id)}
            )
            raise NotFoundError(
                resource_type="user",
                resource_id=str(user_id)
            )
        return user
