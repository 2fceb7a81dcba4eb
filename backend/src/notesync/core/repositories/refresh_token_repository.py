"""Refresh token repository for database operations."""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import utcnow
from ..models.refresh_token import RefreshToken


class RefreshTokenRepository:
    """Repository for refresh token database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_for_user(self, user_id: UUID, expires_days: int) -> RefreshToken:
        """Issue and store a new refresh token."""
        token = RefreshToken.create_for_user(user_id, expires_days)
        self.session.add(token)
        await self.session.commit()
        await self.session.refresh(token)
        return token

    async def get_by_token(self, token: str) -> Optional[RefreshToken]:
        """Get refresh token by token string."""
        stmt = select(RefreshToken).where(RefreshToken.token == token)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke(self, token: RefreshToken) -> None:
        token.revoke()
        await self.session.commit()

    async def delete_user_tokens(self, user_id: UUID) -> int:
        """Delete all refresh tokens for user."""
        stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount

    async def delete_expired_tokens(self) -> int:
        """Delete every expired token, whoever it belongs to."""
        stmt = delete(RefreshToken).where(RefreshToken.expires_at < utcnow())
        result = await self.session.execute(stmt)
        await self.session.commit()
        return result.rowcount
