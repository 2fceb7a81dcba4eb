"""
Database models for NoteSync.

SQLAlchemy ORM models that define the schema:
    - User: account with email/password authentication and preferences
    - Note: note content, password protection and image references
    - Label: per-user labels, linked to notes through NoteLabel
    - NoteCollaborator: users allowed to read/edit a note
    - RefreshToken: rotating refresh tokens
"""

from .base import BaseModel
from .collaborator import NoteCollaborator
from .label import Label, NoteLabel
from .note import Note
from .refresh_token import RefreshToken
from .user import User

__all__ = [
    "BaseModel",
    "User",
    "Note",
    "Label",
    "NoteLabel",
    "NoteCollaborator",
    "RefreshToken",
]
