"""Note service implementation.

Every operation takes an access snapshot, asks :func:`decide_access` and
turns denials into domain errors. A REQUIRE_PASSWORD decision is not an
error: the caller gets the redacted :class:`NoteSummary` instead.
"""

from typing import Iterable, List, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...security import hash_password
from ...security.access import (
    AccessDecision,
    NoteOperation,
    NoteSnapshot,
    decide_access,
    verify_note_password,
)
from ..exceptions import (
    BadRequestError,
    NotCollaboratorError,
    NotFoundError,
    NotOwnerError,
    PasswordMismatchError,
)
from ..logging import get_logger
from ..models.note import Note
from ..repositories.label_repository import LabelRepository
from ..repositories.note_repository import NoteRepository, snapshot_of
from ..repositories.user_repository import UserRepository
from ..schemas.notes import ImageRef, NoteCreate, NoteResponse, NoteSummary, NoteUpdate, NoteVerifyRequest

logger = get_logger("notes")

NoteView = Union[NoteResponse, NoteSummary]

_DENIED_MESSAGES = {
    NoteOperation.READ: "Not authorized to access this note",
    NoteOperation.EDIT: "Not authorized to update this note",
    NoteOperation.MANAGE_LABELS_ON_NOTE: "Not authorized to update this note",
    NoteOperation.DELETE: "Not authorized to delete this note",
    NoteOperation.MANAGE_COLLABORATORS: "Not authorized to manage collaborators",
}


def to_view(note: Note, reveal: bool) -> NoteView:
    """Full note when revealed, otherwise the redacted summary for protected notes."""
    if note.is_password_protected and not reveal:
        return NoteSummary.model_validate(note)
    return NoteResponse.model_validate(note)


class NoteService:
    """Note service implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.note_repo = NoteRepository(session)
        self.label_repo = LabelRepository(session)
        self.user_repo = UserRepository(session)
        self.settings = get_settings()

    async def list_notes(self, user_id: UUID) -> List[NoteView]:
        """Owned and shared notes; protected ones are listed redacted."""
        notes = await self.note_repo.list_accessible_notes(user_id)
        return [to_view(note, reveal=False) for note in notes]

    async def create_note(self, user_id: UUID, request: NoteCreate) -> NoteResponse:
        """Create a note owned by the requester."""
        self._check_title(request.title)
        self._check_images(request.images)
        await self._check_labels(request.label_ids, allowed_owners={user_id})

        note = Note(
            title=request.title,
            content=request.content,
            is_pinned=request.is_pinned,
            images=[image.model_dump() for image in request.images],
            background_color=request.background_color or self.settings.default_note_color,
            owner_id=user_id,
        )
        if request.is_password_protected:
            if not request.password:
                raise BadRequestError("Please provide a password to protect this note")
            note.set_password_hash(hash_password(request.password))
        elif request.password:
            raise BadRequestError("Password given for a note that is not protected")

        note = await self.note_repo.create_note(note, request.label_ids)
        logger.info(f"Note {note.id} created by {user_id}")
        return NoteResponse.model_validate(note)

    async def get_note(self, note_id: UUID, user_id: UUID) -> NoteView:
        """READ; protected notes come back redacted until verified."""
        # decide on the loaded row so the body returned is the one checked
        note = await self._get(note_id)
        decision = self._check(snapshot_of(note), user_id, NoteOperation.READ)
        return to_view(note, reveal=decision == AccessDecision.ALLOW)

    async def verify_password(
        self, note_id: UUID, user_id: UUID, request: NoteVerifyRequest
    ) -> NoteResponse:
        """READ with a password checked for this call only."""
        if not request.password:
            raise BadRequestError("Please provide a password")

        note = await self._get(note_id)
        snapshot = snapshot_of(note)
        verified = verify_note_password(request.password, snapshot.password_hash)
        decision = self._check(snapshot, user_id, NoteOperation.READ, password_verified=verified)
        if decision == AccessDecision.REQUIRE_PASSWORD:
            raise PasswordMismatchError("Incorrect password")

        return NoteResponse.model_validate(note)

    async def update_note(self, note_id: UUID, user_id: UUID, request: NoteUpdate) -> NoteView:
        """EDIT; label changes also need MANAGE_LABELS_ON_NOTE."""
        note = await self._get(note_id)
        snapshot = snapshot_of(note)
        self._check(snapshot, user_id, NoteOperation.EDIT)
        if request.label_ids is not None:
            self._check(snapshot, user_id, NoteOperation.MANAGE_LABELS_ON_NOTE)
            await self._check_labels(request.label_ids, allowed_owners={user_id, snapshot.owner_id})

        update_data = {}
        if request.title is not None:
            self._check_title(request.title)
            update_data["title"] = request.title
        if request.content is not None:
            update_data["content"] = request.content
        if request.is_pinned is not None:
            update_data["is_pinned"] = request.is_pinned
        if request.images is not None:
            self._check_images(request.images)
            update_data["images"] = [image.model_dump() for image in request.images]
        if request.background_color is not None:
            update_data["background_color"] = request.background_color

        password_set = self._apply_password_change(note, request)

        note = await self.note_repo.update_note(note, update_data, label_ids=request.label_ids)
        logger.info(f"Note {note_id} updated by {user_id}")
        return to_view(note, reveal=password_set)

    async def delete_note(self, note_id: UUID, user_id: UUID) -> None:
        await self._authorize(note_id, user_id, NoteOperation.DELETE)
        await self.note_repo.delete_note(note_id)
        logger.info(f"Note {note_id} deleted by {user_id}")

    async def add_collaborator(self, note_id: UUID, user_id: UUID, collaborator_id: UUID) -> NoteView:
        await self._authorize(note_id, user_id, NoteOperation.MANAGE_COLLABORATORS)
        if not await self.user_repo.get_by_id(collaborator_id):
            raise NotFoundError("User not found")

        if not await self.note_repo.add_collaborator(note_id, collaborator_id):
            raise BadRequestError("User is already a collaborator")
        logger.info(f"User {collaborator_id} added as collaborator on note {note_id}")
        return to_view(await self._get(note_id), reveal=False)

    async def remove_collaborator(
        self, note_id: UUID, user_id: UUID, collaborator_id: UUID
    ) -> NoteView:
        """Removing a user that is not a collaborator changes nothing."""
        await self._authorize(note_id, user_id, NoteOperation.MANAGE_COLLABORATORS)
        if await self.note_repo.remove_collaborator(note_id, collaborator_id):
            logger.info(f"User {collaborator_id} removed from note {note_id}")
        return to_view(await self._get(note_id), reveal=False)

    # helpers

    async def _snapshot(self, note_id: UUID) -> NoteSnapshot:
        snapshot = await self.note_repo.get_access_snapshot(note_id)
        if snapshot is None:
            raise NotFoundError("Note not found")
        return snapshot

    async def _get(self, note_id: UUID) -> Note:
        note = await self.note_repo.get_by_id(note_id)
        if note is None:
            raise NotFoundError("Note not found")
        return note

    async def _authorize(self, note_id: UUID, user_id: UUID, operation: NoteOperation) -> AccessDecision:
        snapshot = await self._snapshot(note_id)
        return self._check(snapshot, user_id, operation)

    def _check(
        self,
        snapshot: NoteSnapshot,
        user_id: UUID,
        operation: NoteOperation,
        password_verified: bool = False,
    ) -> AccessDecision:
        decision = decide_access(snapshot, user_id, operation, password_verified=password_verified)
        if decision == AccessDecision.DENY_NOT_OWNER:
            raise NotOwnerError(_DENIED_MESSAGES[operation])
        if decision == AccessDecision.DENY_NOT_COLLABORATOR:
            raise NotCollaboratorError(_DENIED_MESSAGES[operation])
        return decision

    def _apply_password_change(self, note: Note, request: NoteUpdate) -> bool:
        """Keep flag and hash consistent; True when this call set a new password."""
        if request.is_password_protected is False:
            note.set_password_hash(None)
            return False

        if request.is_password_protected is True:
            if request.password:
                note.set_password_hash(hash_password(request.password))
                return True
            if note.password_hash is None:
                raise BadRequestError("Please provide a password to protect this note")
            return False

        if request.password:
            if not note.is_password_protected:
                raise BadRequestError("Password given for a note that is not protected")
            note.set_password_hash(hash_password(request.password))
            return True
        return False

    def _check_title(self, title: str) -> None:
        if len(title) > self.settings.note_title_max_length:
            raise BadRequestError(
                f"Title can not be more than {self.settings.note_title_max_length} characters"
            )

    def _check_images(self, images: List[ImageRef]) -> None:
        if len(images) > self.settings.max_images_per_note:
            raise BadRequestError(
                f"A note can hold at most {self.settings.max_images_per_note} images"
            )

    async def _check_labels(self, label_ids: Iterable[UUID], allowed_owners: set) -> None:
        wanted = set(label_ids)
        if not wanted:
            return
        labels = await self.label_repo.get_by_ids(wanted)
        if len(labels) != len(wanted) or any(label.owner_id not in allowed_owners for label in labels):
            raise BadRequestError("Invalid label")
