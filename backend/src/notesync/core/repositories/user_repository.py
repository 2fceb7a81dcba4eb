"""User repository for database operations."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User


class UserRepository:
    """Repository for user database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_user(self, user_data: dict) -> User:
        """Create new user."""
        user = User(**user_data)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by normalized email."""
        stmt = select(User).where(User.email == User.normalize_email(email))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_user(self, user: User, update_data: dict) -> User:
        """Update user data."""
        for key, value in update_data.items():
            setattr(user, key, value)

        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def is_email_taken(self, email: str, exclude_user_id: Optional[UUID] = None) -> bool:
        """Check if email belongs to another account."""
        user = await self.get_by_email(email)
        return user is not None and user.id != exclude_user_id

    async def get_by_activation_token(self, token: str) -> Optional[User]:
        """User holding this activation token, expired or not."""
        stmt = select(User).where(User.activation_token_hash == User.hash_activation_token(token))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
