"""API routers for NoteSync."""

from .auth import router as auth_router
from .collaboration import router as collaboration_router
from .health import router as health_router
from .labels import router as labels_router
from .notes import router as notes_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "users_router",
    "notes_router",
    "labels_router",
    "health_router",
    "collaboration_router",
]
