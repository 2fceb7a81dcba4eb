"""
Pydantic schemas for validating and documenting API requests and responses.

This package exposes the Pydantic models used across the application to
define input/output contracts for authentication, users, notes, labels
and the common response envelope.
"""

from .auth import (
    ActivationTokenResponse,
    LoginRequest,
    PasswordChangeRequest,
    PreferencesUpdateRequest,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
    UpdateDetailsRequest,
    UserResponse,
)
from .common import ApiResponse, ErrorResponse, HealthCheckResponse, PasswordRequiredResponse
from .labels import LabelCreate, LabelResponse, LabelUpdate
from .notes import (
    ImageRef,
    NoteCreate,
    NoteResponse,
    NoteSummary,
    NoteUpdate,
    NoteVerifyRequest,
)
from .users import PublicUserResponse

__all__ = [
    # Auth schemas
    "RegisterRequest",
    "RegisterResponse",
    "ActivationTokenResponse",
    "LoginRequest",
    "RefreshTokenRequest",
    "TokenResponse",
    "UserResponse",
    "UpdateDetailsRequest",
    "PasswordChangeRequest",
    "PreferencesUpdateRequest",
    # User schemas
    "PublicUserResponse",
    # Note schemas
    "ImageRef",
    "NoteCreate",
    "NoteUpdate",
    "NoteVerifyRequest",
    "NoteSummary",
    "NoteResponse",
    # Label schemas
    "LabelCreate",
    "LabelUpdate",
    "LabelResponse",
    # Common schemas
    "ApiResponse",
    "PasswordRequiredResponse",
    "ErrorResponse",
    "HealthCheckResponse",
]
