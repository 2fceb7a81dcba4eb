"""
Authentication and account schemas.

These schemas define the API contracts for registration, login,
token refresh and profile management.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def _normalize_email(value: Any) -> Any:
    # EmailStr does the validation, addresses are stored lower-cased
    return value.strip().lower() if isinstance(value, str) else value


def _check_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Please add a name")
    return value


class RegisterRequest(BaseModel):
    """User registration request schema."""

    name: str = Field(min_length=1, max_length=50, description="Display name")
    email: EmailStr = Field(description="Unique email address")
    password: str = Field(min_length=6, max_length=128, description="User password")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _check_name(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Ada", "email": "ada@example.com", "password": "secret123"}
        }
    )


class LoginRequest(BaseModel):
    """User login request schema."""

    email: EmailStr = Field(description="Account email")
    password: str = Field(min_length=1, max_length=128, description="User password")

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(min_length=1, description="Opaque refresh token")


class UserResponse(BaseModel):
    """Own account, as returned by /me and at login."""

    id: uuid.UUID = Field(description="User unique identifier")
    name: str = Field(description="Display name")
    email: str = Field(description="Email address")
    is_activated: bool = Field(description="Whether the account is activated")
    preferences: Dict[str, Any] = Field(default_factory=dict, description="UI preferences")
    avatar: Optional[str] = Field(default=None, description="Avatar reference")
    created_at: datetime = Field(description="Account creation timestamp")

    model_config = ConfigDict(from_attributes=True)


class RegisterResponse(UserResponse):
    """New account; inactive accounts also get their one-time activation token."""

    activation_token: Optional[str] = Field(
        default=None, description="Exchange at /api/auth/activate/{token}; None when already active"
    )


class ActivationTokenResponse(BaseModel):
    """Replacement activation token for an account that is not active yet."""

    activation_token: str = Field(description="One-time activation token")
    expires_in: int = Field(description="Token lifetime in seconds")


class TokenResponse(BaseModel):
    """Token pair issued at login and refresh."""

    access_token: str = Field(description="JWT access token")
    refresh_token: str = Field(description="Opaque refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(description="Access token lifetime in seconds")
    user: UserResponse = Field(description="User information")


class UpdateDetailsRequest(BaseModel):
    """Profile update; omitted fields stay unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    email: Optional[EmailStr] = Field(default=None)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _check_name(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)


class PasswordChangeRequest(BaseModel):
    """Password change request schema."""

    current_password: str = Field(min_length=1, description="Current password")
    new_password: str = Field(min_length=6, max_length=128, description="New password")


class PreferencesUpdateRequest(BaseModel):
    """Preference keys to merge into the stored map."""

    preferences: Dict[str, Any] = Field(description="Keys to set; other keys are kept")

    model_config = ConfigDict(
        json_schema_extra={"example": {"preferences": {"theme": "dark", "view": "grid"}}}
    )
