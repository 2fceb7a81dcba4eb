# Label models for organizing notes
import uuid

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel
from .types import GUID


class Label(BaseModel):
    """Per-user label; names are unique for each owner."""

    __tablename__ = "labels"

    name: Mapped[str] = mapped_column(String(20), nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#4f46e5", nullable=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("name", "owner_id", name="uq_labels_name_owner"),
        CheckConstraint("length(name) <= 20", name="ck_labels_name_len"),
        Index("idx_labels_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Label(name='{self.name}')>"

    @classmethod
    def normalize_name(cls, name: str) -> str:
        """Clean up label name."""
        clean = name.strip()
        if not clean:
            raise ValueError("Label name cannot be empty")
        return clean


class NoteLabel(BaseModel):
    """Links notes to labels."""

    __tablename__ = "note_labels"

    note_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    label_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("labels.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("note_id", "label_id", name="uq_note_labels_note_label"),
        Index("idx_note_labels_note_id", "note_id"),
        Index("idx_note_labels_label_id", "label_id"),
    )

    def __repr__(self) -> str:
        return f"<NoteLabel(note_id={self.note_id}, label_id={self.label_id})>"
