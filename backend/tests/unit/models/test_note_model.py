"""
Unit tests for Note, Label and collaborator models.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from notesync.core.models import Label, Note, NoteCollaborator, NoteLabel, RefreshToken, User


class TestNoteModel:
    """Test Note model functionality."""

    async def test_create_note_defaults(self, test_session, owner):
        note = Note(content="hello", owner_id=owner.id)

        test_session.add(note)
        await test_session.commit()
        await test_session.refresh(note)

        assert isinstance(note.id, uuid.UUID)
        assert note.title == ""
        assert note.is_pinned is False
        assert note.is_password_protected is False
        assert note.password_hash is None
        assert note.images == []
        assert note.background_color == "#ffffff"
        assert isinstance(note.last_updated, datetime)
        assert note.is_owned_by(owner.id)

    def test_set_password_hash_keeps_flag_in_sync(self):
        note = Note(content="", owner_id=uuid.uuid4())

        note.set_password_hash("$hash")
        assert note.is_password_protected is True
        assert note.password_hash == "$hash"

        note.set_password_hash(None)
        assert note.is_password_protected is False
        assert note.password_hash is None

    def test_touch_moves_last_updated(self):
        note = Note(content="", owner_id=uuid.uuid4())
        note.last_updated = datetime.now(timezone.utc) - timedelta(days=1)

        note.touch()

        assert datetime.now(timezone.utc) - note.last_updated < timedelta(seconds=5)

    @pytest.mark.parametrize(
        "protected,password_hash",
        [(True, None), (False, "$hash")],
    )
    async def test_inconsistent_protection_rejected(self, test_session, owner, protected, password_hash):
        note = Note(
            content="x",
            owner_id=owner.id,
            is_password_protected=protected,
            password_hash=password_hash,
        )
        test_session.add(note)

        with pytest.raises(IntegrityError):
            await test_session.commit()

    async def test_title_length_limit(self, test_session, owner):
        test_session.add(Note(title="t" * 101, content="", owner_id=owner.id))

        with pytest.raises(IntegrityError):
            await test_session.commit()

    async def test_images_keep_order(self, test_session, owner):
        images = [{"url": f"https://img/{i}.png", "public_id": str(i)} for i in range(3)]
        note = Note(content="", images=images, owner_id=owner.id)

        test_session.add(note)
        await test_session.commit()
        await test_session.refresh(note)

        assert note.images == images

    async def test_labels_and_collaborators_loaded(self, test_session, owner, collaborator):
        note = Note(content="", owner_id=owner.id)
        label_b = Label(name="b", owner_id=owner.id)
        label_a = Label(name="a", owner_id=owner.id)
        test_session.add_all([note, label_a, label_b])
        await test_session.flush()
        test_session.add_all(
            [
                NoteLabel(note_id=note.id, label_id=label_b.id),
                NoteLabel(note_id=note.id, label_id=label_a.id),
                NoteCollaborator(note_id=note.id, user_id=collaborator.id),
            ]
        )
        await test_session.commit()

        loaded = (
            await test_session.execute(
                select(Note).where(Note.id == note.id).execution_options(populate_existing=True)
            )
        ).scalar_one()

        assert [label.name for label in loaded.labels] == ["a", "b"]
        assert loaded.label_ids == [label_a.id, label_b.id]
        assert loaded.collaborator_ids == [collaborator.id]

    async def test_duplicate_collaborator_row_rejected(self, test_session, owner, collaborator):
        note = Note(content="", owner_id=owner.id)
        test_session.add(note)
        await test_session.flush()
        test_session.add(NoteCollaborator(note_id=note.id, user_id=collaborator.id))
        await test_session.commit()

        test_session.add(NoteCollaborator(note_id=note.id, user_id=collaborator.id))
        with pytest.raises(IntegrityError):
            await test_session.commit()


class TestLabelModel:
    async def test_name_unique_per_owner(self, test_session, owner):
        test_session.add(Label(name="work", owner_id=owner.id))
        await test_session.commit()

        test_session.add(Label(name="work", owner_id=owner.id))
        with pytest.raises(IntegrityError):
            await test_session.commit()

    async def test_same_name_for_different_owners(self, test_session, owner, collaborator):
        test_session.add_all(
            [Label(name="work", owner_id=owner.id), Label(name="work", owner_id=collaborator.id)]
        )
        await test_session.commit()

        labels = (await test_session.execute(select(Label).where(Label.name == "work"))).scalars()
        assert len(list(labels)) == 2

    def test_normalize_name(self):
        assert Label.normalize_name("  work ") == "work"
        with pytest.raises(ValueError):
            Label.normalize_name("   ")


class TestUserModel:
    def test_normalize_email(self):
        assert User.normalize_email("  Bob@Example.COM ") == "bob@example.com"

    def test_merge_preferences_is_shallow(self):
        user = User(name="u", email="u@example.com", password_hash="x", preferences={"theme": "dark", "grid": {"cols": 2}})

        merged = user.merge_preferences({"grid": {"rows": 3}, "lang": "en"})

        assert merged == {"theme": "dark", "grid": {"rows": 3}, "lang": "en"}
        assert user.preferences == merged

    def test_activation_token_stored_hashed(self):
        user = User(name="u", email="u@example.com", password_hash="x", is_activated=False)

        token = user.issue_activation_token(expires_hours=1)

        assert user.activation_token_hash == User.hash_activation_token(token)
        assert token not in user.activation_token_hash
        assert not user.activation_token_expired

        user.activate()
        assert user.is_activated is True
        assert user.activation_token_hash is None
        assert user.activation_token_expired

    def test_reissue_replaces_token(self):
        user = User(name="u", email="u@example.com", password_hash="x")
        first = user.issue_activation_token()

        second = user.issue_activation_token()

        assert first != second
        assert user.activation_token_hash == User.hash_activation_token(second)

    async def test_email_unique(self, test_session, owner):
        test_session.add(User(name="dup", email=owner.email, password_hash="x"))
        with pytest.raises(IntegrityError):
            await test_session.commit()


class TestRefreshTokenModel:
    def test_create_for_user(self):
        user_id = uuid.uuid4()
        token = RefreshToken.create_for_user(user_id, expires_days=1)
        token.is_active = True

        assert token.user_id == user_id
        assert token.is_valid
        assert not token.is_expired

    def test_expired_and_revoked(self):
        token = RefreshToken.create_for_user(uuid.uuid4())
        token.is_active = True
        token.expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
        assert token.is_expired
        assert not token.is_valid

        fresh = RefreshToken.create_for_user(uuid.uuid4())
        fresh.is_active = True
        fresh.revoke()
        assert not fresh.is_valid
        assert fresh.revoked_at is not None

    def test_naive_expiry_treated_as_utc(self):
        token = RefreshToken.create_for_user(uuid.uuid4())
        token.expires_at = (datetime.now(timezone.utc) + timedelta(hours=1)).replace(tzinfo=None)
        assert not token.is_expired
