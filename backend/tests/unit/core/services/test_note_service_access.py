"""NoteService tests: access decisions, redaction and password rules."""

import uuid
from unittest.mock import AsyncMock

import pytest

from notesync.core.exceptions import (
    BadRequestError,
    NotCollaboratorError,
    NotFoundError,
    NotOwnerError,
    PasswordMismatchError,
)
from notesync.core.schemas import (
    LabelCreate,
    NoteCreate,
    NoteResponse,
    NoteSummary,
    NoteUpdate,
    NoteVerifyRequest,
)
from notesync.core.services import LabelService, NoteService


@pytest.fixture
def service(test_session):
    return NoteService(test_session)


async def protected_note(service, owner, password="abc"):
    return await service.create_note(
        owner.id,
        NoteCreate(title="secret", content="hidden body", is_password_protected=True, password=password),
    )


class TestCreate:
    async def test_create_returns_full_note(self, service, owner):
        created = await service.create_note(owner.id, NoteCreate(title="  Groceries ", content="milk"))

        assert isinstance(created, NoteResponse)
        assert created.title == "Groceries"
        assert created.owner_id == owner.id
        assert created.collaborators == []
        assert created.background_color == "#ffffff"

    async def test_protected_needs_password(self, service, owner):
        with pytest.raises(BadRequestError):
            await service.create_note(owner.id, NoteCreate(content="x", is_password_protected=True))

    async def test_password_without_protection(self, service, owner):
        with pytest.raises(BadRequestError):
            await service.create_note(owner.id, NoteCreate(content="x", password="abc"))

    async def test_foreign_label_rejected(self, service, test_session, owner, stranger):
        label = await LabelService(test_session).create_label(stranger.id, LabelCreate(name="theirs"))

        with pytest.raises(BadRequestError, match="Invalid label"):
            await service.create_note(owner.id, NoteCreate(content="x", label_ids=[label.id]))

    async def test_own_labels_attached(self, service, test_session, owner):
        label = await LabelService(test_session).create_label(owner.id, LabelCreate(name="work"))

        created = await service.create_note(owner.id, NoteCreate(content="x", label_ids=[label.id]))

        assert [item.name for item in created.labels] == ["work"]

    async def test_too_many_images(self, service, owner):
        images = [{"url": f"https://img/{i}", "public_id": str(i)} for i in range(21)]
        with pytest.raises(BadRequestError):
            await service.create_note(owner.id, NoteCreate(content="x", images=images))


class TestRead:
    async def test_missing_note(self, service, owner):
        with pytest.raises(NotFoundError):
            await service.get_note(uuid.uuid4(), owner.id)

    async def test_stranger_denied(self, service, owner, stranger):
        note = await service.create_note(owner.id, NoteCreate(content="x"))

        with pytest.raises(NotCollaboratorError):
            await service.get_note(note.id, stranger.id)

    async def test_collaborator_reads_unprotected(self, service, owner, collaborator):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        got = await service.get_note(note.id, collaborator.id)

        assert isinstance(got, NoteResponse)
        assert got.content == "x"
        assert [user.id for user in got.collaborators] == [collaborator.id]

    async def test_protected_note_redacted_until_verified(self, service, owner, collaborator):
        note = await protected_note(service, owner)
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        partial = await service.get_note(note.id, collaborator.id)
        assert type(partial) is NoteSummary
        assert partial.is_password_protected is True
        assert "content" not in partial.model_dump()

        with pytest.raises(PasswordMismatchError):
            await service.verify_password(note.id, collaborator.id, NoteVerifyRequest(password="wrong"))

        full = await service.verify_password(note.id, collaborator.id, NoteVerifyRequest(password="abc"))
        assert full.content == "hidden body"

        # verification is not remembered
        again = await service.get_note(note.id, collaborator.id)
        assert type(again) is NoteSummary

    async def test_verify_requires_password(self, service, owner):
        note = await protected_note(service, owner)
        with pytest.raises(BadRequestError):
            await service.verify_password(note.id, owner.id, NoteVerifyRequest())

    async def test_verify_does_not_help_strangers(self, service, owner, stranger):
        note = await protected_note(service, owner)
        with pytest.raises(NotCollaboratorError):
            await service.verify_password(note.id, stranger.id, NoteVerifyRequest(password="abc"))

    async def test_read_decides_on_the_row_it_returns(self, service, owner, collaborator):
        note = await service.create_note(owner.id, NoteCreate(content="was open"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)
        stale = await service.note_repo.get_access_snapshot(note.id)

        # protection committed after an earlier snapshot was taken
        await service.update_note(note.id, owner.id, NoteUpdate(is_password_protected=True, password="abc"))
        service.note_repo.get_access_snapshot = AsyncMock(return_value=stale)

        got = await service.get_note(note.id, collaborator.id)

        assert type(got) is NoteSummary
        assert "content" not in got.model_dump()

    async def test_verify_checks_the_current_hash(self, service, owner, collaborator):
        note = await protected_note(service, owner, password="old")
        await service.add_collaborator(note.id, owner.id, collaborator.id)
        stale = await service.note_repo.get_access_snapshot(note.id)

        await service.update_note(note.id, owner.id, NoteUpdate(password="new"))
        service.note_repo.get_access_snapshot = AsyncMock(return_value=stale)

        with pytest.raises(PasswordMismatchError):
            await service.verify_password(note.id, collaborator.id, NoteVerifyRequest(password="old"))
        full = await service.verify_password(note.id, collaborator.id, NoteVerifyRequest(password="new"))
        assert full.content == "hidden body"

    async def test_list_redacts_protected(self, service, owner):
        await protected_note(service, owner)
        await service.create_note(owner.id, NoteCreate(content="open"))

        listed = await service.list_notes(owner.id)

        kinds = sorted(type(item).__name__ for item in listed)
        assert kinds == ["NoteResponse", "NoteSummary"]


class TestUpdateAndDelete:
    async def test_collaborator_can_edit(self, service, owner, collaborator):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        updated = await service.update_note(note.id, collaborator.id, NoteUpdate(content="y"))

        assert updated.content == "y"
        assert updated.owner_id == owner.id

    async def test_collaborator_cannot_delete(self, service, owner, collaborator):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        with pytest.raises(NotOwnerError):
            await service.delete_note(note.id, collaborator.id)

        await service.delete_note(note.id, owner.id)
        with pytest.raises(NotFoundError):
            await service.get_note(note.id, owner.id)

    async def test_stranger_cannot_edit(self, service, owner, stranger):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        with pytest.raises(NotCollaboratorError):
            await service.update_note(note.id, stranger.id, NoteUpdate(content="y"))

    async def test_enable_protection_with_password(self, service, owner):
        note = await service.create_note(owner.id, NoteCreate(content="x"))

        updated = await service.update_note(
            note.id, owner.id, NoteUpdate(is_password_protected=True, password="abc")
        )

        assert isinstance(updated, NoteResponse)
        assert updated.is_password_protected is True
        assert type(await service.get_note(note.id, owner.id)) is NoteSummary

    async def test_enable_protection_without_password(self, service, owner):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        with pytest.raises(BadRequestError):
            await service.update_note(note.id, owner.id, NoteUpdate(is_password_protected=True))

    async def test_password_on_unprotected_note(self, service, owner):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        with pytest.raises(BadRequestError):
            await service.update_note(note.id, owner.id, NoteUpdate(password="abc"))

    async def test_disable_protection_clears_hash(self, service, owner):
        note = await protected_note(service, owner)

        updated = await service.update_note(note.id, owner.id, NoteUpdate(is_password_protected=False))

        assert isinstance(updated, NoteResponse)
        assert updated.is_password_protected is False
        snapshot = await service.note_repo.get_access_snapshot(note.id)
        assert snapshot.password_hash is None

    async def test_plain_edit_of_protected_note_stays_redacted(self, service, owner):
        note = await protected_note(service, owner)

        updated = await service.update_note(note.id, owner.id, NoteUpdate(title="renamed"))

        assert type(updated) is NoteSummary
        assert updated.title == "renamed"

    async def test_change_password(self, service, owner):
        note = await protected_note(service, owner)

        await service.update_note(note.id, owner.id, NoteUpdate(password="new"))

        with pytest.raises(PasswordMismatchError):
            await service.verify_password(note.id, owner.id, NoteVerifyRequest(password="abc"))
        full = await service.verify_password(note.id, owner.id, NoteVerifyRequest(password="new"))
        assert full.content == "hidden body"

    async def test_collaborator_may_use_owner_labels(self, service, test_session, owner, collaborator, stranger):
        labels = LabelService(test_session)
        owners_label = await labels.create_label(owner.id, LabelCreate(name="team"))
        strangers_label = await labels.create_label(stranger.id, LabelCreate(name="nope"))
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        updated = await service.update_note(note.id, collaborator.id, NoteUpdate(label_ids=[owners_label.id]))
        assert [label.name for label in updated.labels] == ["team"]

        with pytest.raises(BadRequestError):
            await service.update_note(note.id, collaborator.id, NoteUpdate(label_ids=[strangers_label.id]))


class TestCollaboratorManagement:
    async def test_only_owner_manages(self, service, owner, collaborator, stranger):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        with pytest.raises(NotOwnerError):
            await service.add_collaborator(note.id, collaborator.id, stranger.id)
        with pytest.raises(NotOwnerError):
            await service.remove_collaborator(note.id, collaborator.id, collaborator.id)

    async def test_unknown_user(self, service, owner):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        with pytest.raises(NotFoundError, match="User not found"):
            await service.add_collaborator(note.id, owner.id, uuid.uuid4())

    async def test_duplicate(self, service, owner, collaborator):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        with pytest.raises(BadRequestError, match="already a collaborator"):
            await service.add_collaborator(note.id, owner.id, collaborator.id)

    async def test_remove_revokes_access(self, service, owner, collaborator):
        note = await service.create_note(owner.id, NoteCreate(content="x"))
        await service.add_collaborator(note.id, owner.id, collaborator.id)

        result = await service.remove_collaborator(note.id, owner.id, collaborator.id)

        assert result.collaborators == []
        with pytest.raises(NotCollaboratorError):
            await service.get_note(note.id, collaborator.id)

    async def test_remove_non_member_is_noop(self, service, owner, stranger):
        note = await service.create_note(owner.id, NoteCreate(content="x"))

        result = await service.remove_collaborator(note.id, owner.id, stranger.id)

        assert result.id == note.id

    async def test_protected_note_redacted_in_membership_response(self, service, owner, collaborator):
        note = await protected_note(service, owner)

        result = await service.add_collaborator(note.id, owner.id, collaborator.id)

        assert type(result) is NoteSummary
