"""
Public user schemas.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PublicUserResponse(BaseModel):
    """What other users may see about an account; preferences stay private."""

    id: uuid.UUID = Field(description="User unique identifier")
    name: str = Field(description="Display name")
    email: str = Field(description="Email address")
    avatar: Optional[str] = Field(default=None, description="Avatar reference")

    model_config = ConfigDict(from_attributes=True)
