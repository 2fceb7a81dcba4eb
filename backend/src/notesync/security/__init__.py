"""Security utilities."""

from .access import (
    AccessDecision,
    NoteOperation,
    NoteSnapshot,
    decide_access,
    verify_note_password,
)
from .jwt import (
    blacklist_token,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    get_user_id_from_token,
)
from .password import hash_password, needs_update, verify_password

__all__ = [
    "AccessDecision",
    "NoteOperation",
    "NoteSnapshot",
    "decide_access",
    "verify_note_password",
    "hash_password",
    "verify_password",
    "needs_update",
    "blacklist_token",
    "create_access_token",
    "create_refresh_token",
    "decode_access_token",
    "get_user_id_from_token",
]
