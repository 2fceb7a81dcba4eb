"""
Note management schemas.

These schemas define the API contracts for note CRUD operations,
password verification and collaborator views.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .labels import LabelResponse
from .users import PublicUserResponse


class ImageRef(BaseModel):
    """Reference to an image hosted elsewhere."""

    url: str = Field(min_length=1, description="Image URL")
    public_id: str = Field(min_length=1, description="Storage provider id")


class NoteCreate(BaseModel):
    """Note creation request schema."""

    title: str = Field(default="", description="Note title")
    content: str = Field(default="", description="Note content")
    is_pinned: bool = Field(default=False, description="Show the note before unpinned ones")
    is_password_protected: bool = Field(default=False, description="Require a password to read")
    password: Optional[str] = Field(
        default=None, min_length=1, max_length=128, description="Note password, required when protected"
    )
    images: List[ImageRef] = Field(default_factory=list, description="Image references, in order")
    background_color: Optional[str] = Field(default=None, max_length=20, description="Background color")
    label_ids: List[uuid.UUID] = Field(default_factory=list, description="Labels to attach")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Groceries",
                "content": "milk, eggs, coffee",
                "is_pinned": True,
                "is_password_protected": False,
                "images": [],
                "background_color": "#fff475",
                "label_ids": [],
            }
        }
    )


class NoteUpdate(BaseModel):
    """Note update request schema; omitted fields stay unchanged."""

    title: Optional[str] = Field(default=None, description="Note title")
    content: Optional[str] = Field(default=None, description="Note content")
    is_pinned: Optional[bool] = Field(default=None)
    is_password_protected: Optional[bool] = Field(
        default=None, description="False clears the stored password"
    )
    password: Optional[str] = Field(default=None, min_length=1, max_length=128)
    images: Optional[List[ImageRef]] = Field(default=None)
    background_color: Optional[str] = Field(default=None, max_length=20)
    label_ids: Optional[List[uuid.UUID]] = Field(default=None, description="Replaces the label set")

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else v.strip()


class NoteVerifyRequest(BaseModel):
    """Password attempt for a protected note."""

    password: Optional[str] = Field(default=None, description="Candidate password")


class NoteSummary(BaseModel):
    """Redacted view of a protected note: no body until the password is verified."""

    id: uuid.UUID
    title: str
    is_password_protected: bool
    owner_id: uuid.UUID
    created_at: datetime
    last_updated: datetime

    model_config = ConfigDict(from_attributes=True)


class NoteResponse(NoteSummary):
    """Full note."""

    content: str
    is_pinned: bool
    images: List[ImageRef] = Field(default_factory=list)
    background_color: str
    labels: List[LabelResponse] = Field(default_factory=list)
    collaborators: List[PublicUserResponse] = Field(default_factory=list)

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "title": "Groceries",
                "content": "milk, eggs, coffee",
                "is_pinned": True,
                "is_password_protected": False,
                "images": [],
                "background_color": "#fff475",
                "labels": [{"id": "9f0c2a1e-8d1b-4c1e-9f57-1f0a4b0c6d11", "name": "home", "color": "#4f46e5"}],
                "collaborators": [],
                "owner_id": "456e7890-e89b-12d3-a456-426614174000",
                "created_at": "2026-03-02T10:30:00Z",
                "last_updated": "2026-03-02T11:00:00Z",
            }
        },
    )
