# Note model for user content
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, utcnow
from .types import GUID, JSONType

if TYPE_CHECKING:
    from .label import Label
    from .user import User


class Note(BaseModel):
    """Note with content, labels, collaborators and optional password protection."""

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # flag and hash only change together, see set_password_hash()
    is_password_protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ordered [{"url": ..., "public_id": ...}]
    images: Mapped[List[Dict[str, Any]]] = mapped_column(JSONType, default=list, nullable=False)
    background_color: Mapped[str] = mapped_column(String(20), default="#ffffff", nullable=False)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    # owner reference, never reassigned
    owner_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # association rows are written through the repository, these are read views
    labels: Mapped[List["Label"]] = relationship(
        "Label",
        secondary="note_labels",
        viewonly=True,
        lazy="selectin",
        order_by="Label.name",
    )
    collaborators: Mapped[List["User"]] = relationship(
        "User",
        secondary="note_collaborators",
        viewonly=True,
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("length(title) <= 100", name="ck_notes_title_len"),
        CheckConstraint(
            "(is_password_protected = true AND password_hash IS NOT NULL) "
            "OR (is_password_protected = false AND password_hash IS NULL)",
            name="ck_notes_password_consistent",
        ),
        Index("idx_notes_owner_id", "owner_id"),
        Index("idx_notes_owner_pinned_updated", "owner_id", "is_pinned", "last_updated"),
    )

    def __repr__(self) -> str:
        truncated = self.title if len(self.title or "") <= 30 else (self.title[:30] + "...")
        return f"<Note(title='{truncated}', owner_id={self.owner_id})>"

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id

    @property
    def collaborator_ids(self) -> List[uuid.UUID]:
        return [user.id for user in self.collaborators]

    @property
    def label_ids(self) -> List[uuid.UUID]:
        return [label.id for label in self.labels]

    def set_password_hash(self, password_hash: Optional[str]) -> None:
        """Protect the note with a hash, or clear protection with None."""
        self.password_hash = password_hash
        self.is_password_protected = password_hash is not None

    def touch(self) -> None:
        self.last_updated = utcnow()
