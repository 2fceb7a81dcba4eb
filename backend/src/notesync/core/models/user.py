"""
User model for authentication and profile data.
"""

import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, as_utc, utcnow
from .types import JSONType


class User(BaseModel):
    """User account, identified by email."""

    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    is_activated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # sha256 of the one-time token handed out at registration, never the token itself
    activation_token_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    activation_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    preferences: Mapped[Dict[str, Any]] = mapped_column(JSONType, default=dict, nullable=False)
    avatar: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("length(name) <= 50", name="ck_users_name_len"),
        Index("idx_users_email", "email"),
        Index("idx_users_activation_token_hash", "activation_token_hash"),
    )

    def __repr__(self) -> str:
        return f"<User(email='{self.email}')>"

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    def merge_preferences(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge preference changes; assigns a new dict so the change is tracked."""
        merged = dict(self.preferences or {})
        merged.update(changes)
        self.preferences = merged
        return merged

    @staticmethod
    def hash_activation_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def issue_activation_token(self, expires_hours: int = 24) -> str:
        """Store a fresh token's hash and return the token; replaces any earlier one."""
        token = secrets.token_urlsafe(32)
        self.activation_token_hash = self.hash_activation_token(token)
        self.activation_token_expires_at = utcnow() + timedelta(hours=expires_hours)
        return token

    @property
    def activation_token_expired(self) -> bool:
        expires_at = as_utc(self.activation_token_expires_at)
        return expires_at is None or utcnow() > expires_at

    def activate(self) -> None:
        self.is_activated = True
        self.activation_token_hash = None
        self.activation_token_expires_at = None
