"""
User repository for database operations.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User, UserRole


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        result = await self.db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    async def get_roles(self, user_id: str) -> list[str]:
        """Role names held by a user."""
        result = await self.db.execute(
            select(UserRole.role_name).where(UserRole.user_id == user_id).order_by(UserRole.role_name)
        )
        return [str(role) for role in result.scalars().all()]

    async def exists(self, user_id: str) -> bool:
        result = await self.db.execute(select(func.count(User.id)).where(User.id == user_id))
        count = result.scalar() or 0
        return count > 0
