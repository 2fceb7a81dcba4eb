"""Note repository for database operations."""

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import delete, desc, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...security.access import NoteSnapshot
from ..logging import get_logger
from ..models.base import utcnow
from ..models.collaborator import NoteCollaborator
from ..models.label import NoteLabel
from ..models.note import Note

logger = get_logger("repositories.notes")


def snapshot_of(note: Note) -> NoteSnapshot:
    """Access snapshot of an already loaded note, consistent with its body."""
    return NoteSnapshot(
        owner_id=note.owner_id,
        collaborator_ids=frozenset(note.collaborator_ids),
        is_password_protected=note.is_password_protected,
        password_hash=note.password_hash,
    )


class NoteRepository:
    """Repository for note database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_note(self, note: Note, label_ids: Iterable[UUID] = ()) -> Note:
        """Persist a new note together with its label links."""
        self.session.add(note)
        await self.session.flush()
        self._link_labels(note.id, label_ids)
        await self.session.commit()
        return await self.get_by_id(note.id)

    async def get_by_id(self, note_id: UUID) -> Optional[Note]:
        """Get note by ID with labels and collaborators freshly loaded."""
        stmt = (
            select(Note)
            .where(Note.id == note_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_access_snapshot(self, note_id: UUID) -> Optional[NoteSnapshot]:
        """Read what access decisions need in one statement.

        One row per collaborator (or a single row with NULL when there are
        none), so the collaborator set is never mixed across two reads.
        """
        stmt = (
            select(
                Note.owner_id,
                Note.is_password_protected,
                Note.password_hash,
                NoteCollaborator.user_id,
            )
            .outerjoin(NoteCollaborator, NoteCollaborator.note_id == Note.id)
            .where(Note.id == note_id)
        )
        rows = (await self.session.execute(stmt)).all()
        if not rows:
            return None

        owner_id, is_protected, password_hash, _ = rows[0]
        return NoteSnapshot(
            owner_id=owner_id,
            collaborator_ids=frozenset(row[3] for row in rows if row[3] is not None),
            is_password_protected=is_protected,
            password_hash=password_hash,
        )

    async def list_accessible_notes(self, user_id: UUID) -> List[Note]:
        """Notes owned by or shared with the user, pinned first then most recently updated."""
        shared_ids = select(NoteCollaborator.note_id).where(NoteCollaborator.user_id == user_id)
        stmt = (
            select(Note)
            .where(or_(Note.owner_id == user_id, Note.id.in_(shared_ids)))
            .order_by(desc(Note.is_pinned), desc(Note.last_updated))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def update_note(
        self,
        note: Note,
        update_data: Dict[str, Any],
        label_ids: Optional[Iterable[UUID]] = None,
    ) -> Note:
        """Apply field changes and, when given, replace the label set."""
        for key, value in update_data.items():
            setattr(note, key, value)
        note.touch()

        if label_ids is not None:
            await self.session.execute(delete(NoteLabel).where(NoteLabel.note_id == note.id))
            self._link_labels(note.id, label_ids)

        await self.session.commit()
        return await self.get_by_id(note.id)

    async def delete_note(self, note_id: UUID) -> bool:
        """Delete note and its association rows."""
        note = await self.get_by_id(note_id)
        if not note:
            return False

        await self.session.execute(delete(NoteLabel).where(NoteLabel.note_id == note_id))
        await self.session.execute(
            delete(NoteCollaborator).where(NoteCollaborator.note_id == note_id)
        )
        await self.session.delete(note)
        await self.session.commit()
        logger.info(f"Deleted note {note_id}")
        return True

    async def add_collaborator(self, note_id: UUID, user_id: UUID) -> bool:
        """Add a collaborator; False when the user already is one."""
        existing = await self.session.execute(
            select(NoteCollaborator.id).where(
                NoteCollaborator.note_id == note_id, NoteCollaborator.user_id == user_id
            )
        )
        if existing.first() is not None:
            return False

        self.session.add(NoteCollaborator(note_id=note_id, user_id=user_id))
        try:
            await self._bump_last_updated(note_id)
            await self.session.commit()
        except IntegrityError:
            # concurrent add of the same pair
            await self.session.rollback()
            return False
        return True

    async def remove_collaborator(self, note_id: UUID, user_id: UUID) -> bool:
        """Remove a collaborator; False when the user was not one."""
        result = await self.session.execute(
            delete(NoteCollaborator).where(
                NoteCollaborator.note_id == note_id, NoteCollaborator.user_id == user_id
            )
        )
        if not result.rowcount:
            await self.session.rollback()
            return False

        await self._bump_last_updated(note_id)
        await self.session.commit()
        return True

    async def _bump_last_updated(self, note_id: UUID) -> None:
        await self.session.execute(
            update(Note).where(Note.id == note_id).values(last_updated=utcnow())
        )

    def _link_labels(self, note_id: UUID, label_ids: Iterable[UUID]) -> None:
        for label_id in dict.fromkeys(label_ids):
            self.session.add(NoteLabel(note_id=note_id, label_id=label_id))
