"""Common schemas used across the application."""

from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ApiError(BaseModel):
    """Normalized description of a failed backend call."""

    model_config = ConfigDict(frozen=True)

    status: int = Field(..., description="HTTP status code")
    message: str = Field(..., description="Human-readable message")
    timestamp: str = Field(default_factory=utc_now_iso, description="ISO-8601")
    path: Optional[str] = Field(default=None, description="Request path")
    errors: Optional[Dict[str, str]] = Field(
        default=None, description="Field-level validation errors"
    )


class ResponseMessage(BaseModel):
    """Generic response message schema."""

    message: str = Field(..., description="Response message")


class HealthCheckResponse(BaseModel):
    """Health check response schema."""

    status: str = Field(..., description="Service status", examples=["healthy"])
    version: str = Field(..., description="API version", examples=["1.0.0"])
    backend: str = Field(..., description="Backend status", examples=["reachable"])
