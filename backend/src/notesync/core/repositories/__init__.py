"""Repository layer for data access."""

from .label_repository import LabelRepository
from .note_repository import NoteRepository
from .refresh_token_repository import RefreshTokenRepository
from .user_repository import UserRepository

__all__ = [
    "UserRepository",
    "NoteRepository",
    "LabelRepository",
    "RefreshTokenRepository",
]
