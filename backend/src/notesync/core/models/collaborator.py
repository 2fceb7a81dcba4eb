# Note collaborators (read/edit, never delete or manage)
import uuid

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel
from .types import GUID


class NoteCollaborator(BaseModel):
    """Grants a user read/edit access to someone else's note.

    The owner may also appear here; nothing prevents it.
    """

    __tablename__ = "note_collaborators"

    note_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("note_id", "user_id", name="uq_note_collaborators_note_user"),
        Index("idx_note_collaborators_note_id", "note_id"),
        Index("idx_note_collaborators_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<NoteCollaborator(note_id={self.note_id}, user_id={self.user_id})>"
