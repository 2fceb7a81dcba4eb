"""
Service layer.

Services own the business rules: they call repositories, ask the access
control module for decisions and raise domain exceptions.
"""

from .auth_service import AuthService
from .health_service import HealthService
from .label_service import LabelService
from .note_service import NoteService
from .user_service import UserService

__all__ = [
    "AuthService",
    "UserService",
    "NoteService",
    "LabelService",
    "HealthService",
]
