"""
Label schemas.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LabelCreate(BaseModel):
    """Label creation request schema."""

    name: str = Field(min_length=1, description="Label name, unique per user")
    color: Optional[str] = Field(default=None, max_length=20, description="Display color")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please add a label name")
        return v

    model_config = ConfigDict(json_schema_extra={"example": {"name": "work", "color": "#4f46e5"}})


class LabelUpdate(BaseModel):
    """Label update request schema."""

    name: Optional[str] = Field(default=None, min_length=1, description="Label name")
    color: Optional[str] = Field(default=None, max_length=20, description="Display color")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Please add a label name")
        return v


class LabelResponse(BaseModel):
    """Label as embedded in notes and listed on its own."""

    id: uuid.UUID = Field(description="Label unique identifier")
    name: str = Field(description="Label name")
    color: str = Field(description="Display color")

    model_config = ConfigDict(from_attributes=True)
