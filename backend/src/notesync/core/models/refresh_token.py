# Opaque refresh tokens backing the JWT access tokens
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, as_utc, utcnow
from .types import GUID


class RefreshToken(BaseModel):
    """Single-use refresh token; rotation revokes the one presented."""

    __tablename__ = "refresh_tokens"

    token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (Index("idx_refresh_tokens_user_id", "user_id"),)

    def __repr__(self) -> str:
        return f"<RefreshToken(user_id={self.user_id}, active={self.is_active})>"

    @classmethod
    def create_for_user(cls, user_id: uuid.UUID, expires_days: int = 7) -> "RefreshToken":
        return cls(
            token=secrets.token_urlsafe(48),
            user_id=user_id,
            is_active=True,
            expires_at=utcnow() + timedelta(days=expires_days),
        )

    @property
    def is_expired(self) -> bool:
        expires_at = as_utc(self.expires_at)
        return expires_at is None or utcnow() > expires_at

    @property
    def is_valid(self) -> bool:
        return bool(self.is_active) and not self.is_expired

    def revoke(self) -> None:
        self.is_active = False
        self.revoked_at = utcnow()
