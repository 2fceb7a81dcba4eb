"""Note access decisions.

Everything here is a pure function of a :class:`NoteSnapshot`: no database,
no request state, nothing remembered between calls. Callers load a snapshot,
ask for a decision and translate it into a response.
"""

import enum
import uuid
from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from .password import verify_password


class NoteOperation(str, enum.Enum):
    READ = "read"
    EDIT = "edit"
    DELETE = "delete"
    MANAGE_COLLABORATORS = "manage_collaborators"
    MANAGE_LABELS_ON_NOTE = "manage_labels_on_note"


class AccessDecision(str, enum.Enum):
    ALLOW = "allow"
    DENY_NOT_OWNER = "deny_not_owner"
    DENY_NOT_COLLABORATOR = "deny_not_collaborator"
    REQUIRE_PASSWORD = "require_password"

    @property
    def is_denied(self) -> bool:
        return self in (AccessDecision.DENY_NOT_OWNER, AccessDecision.DENY_NOT_COLLABORATOR)


# owner only
_OWNER_OPERATIONS = frozenset({NoteOperation.DELETE, NoteOperation.MANAGE_COLLABORATORS})


@dataclass(frozen=True)
class NoteSnapshot:
    """The parts of a note that access decisions depend on."""

    owner_id: uuid.UUID
    collaborator_ids: FrozenSet[uuid.UUID] = field(default_factory=frozenset)
    is_password_protected: bool = False
    password_hash: Optional[str] = None

    def is_owner(self, user_id: uuid.UUID) -> bool:
        return self.owner_id == user_id

    def is_member(self, user_id: uuid.UUID) -> bool:
        return self.is_owner(user_id) or user_id in self.collaborator_ids


def decide_access(
    snapshot: NoteSnapshot,
    requester_id: uuid.UUID,
    operation: NoteOperation,
    password_verified: bool = False,
) -> AccessDecision:
    """Decide whether ``requester_id`` may perform ``operation`` on the note.

    ``password_verified`` only counts for this call; a READ of a protected
    note without it yields REQUIRE_PASSWORD, never ALLOW.
    Label changes on a note follow the EDIT rule.
    """
    if operation in _OWNER_OPERATIONS:
        if snapshot.is_owner(requester_id):
            return AccessDecision.ALLOW
        return AccessDecision.DENY_NOT_OWNER

    if not snapshot.is_member(requester_id):
        return AccessDecision.DENY_NOT_COLLABORATOR

    if (
        operation == NoteOperation.READ
        and snapshot.is_password_protected
        and not password_verified
    ):
        return AccessDecision.REQUIRE_PASSWORD

    return AccessDecision.ALLOW


def verify_note_password(candidate: str, password_hash: Optional[str]) -> bool:
    """Check a note password; a match unlocks nothing beyond the current call."""
    if not candidate or not password_hash:
        return False
    try:
        return verify_password(candidate, password_hash)
    except ValueError:
        # malformed stored hash
        return False
