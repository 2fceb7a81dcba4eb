"""
Shared response schemas - response envelope, errors, health
"""

from datetime import datetime, timezone
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope for every successful API response."""

    success: bool = Field(default=True, description="Operation success status")
    data: Optional[T] = Field(default=None, description="Response payload")

    @classmethod
    def ok(cls, data: Any = None) -> "ApiResponse[T]":
        return cls(success=True, data=data)


class PasswordRequiredResponse(BaseModel, Generic[T]):
    """200 answer for a protected note read without its password.

    ``data`` is the redacted note; the caller retries through ``/verify``.
    """

    success: bool = Field(default=True, description="Operation success status")
    is_password_protected: Literal[True] = Field(description="Always true; the body is withheld")
    data: T = Field(description="Redacted note")

    @classmethod
    def withheld(cls, data: Any) -> "PasswordRequiredResponse[T]":
        return cls(success=True, is_password_protected=True, data=data)


class ErrorResponse(BaseModel):
    """Envelope for failed requests."""

    success: bool = Field(default=False, description="Always false")
    error: str = Field(description="Human-readable error message")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"success": False, "error": "Not authorized to access this note"}
        }
    )


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = Field(description="Application version")
    checks: dict[str, dict[str, Any]] = Field(description="Individual component health checks")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "healthy",
                "timestamp": "2026-03-02T10:30:00Z",
                "version": "1.0.0",
                "checks": {
                    "database": {"status": "healthy", "response_time_ms": 15},
                    "redis": {"status": "healthy", "response_time_ms": 5},
                    "relay": {"status": "healthy", "connections": 3, "groups": 1},
                },
            }
        }
    )
