"""
RecipeHub Backend — Shared Response Schemas
=============================================

What:  Error, message and health payloads shared by all routers.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageResponse(BaseModel):
    message: str = Field(description="Human-readable result")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Rating must be an integer between 1 and 5",
            "details": {"field": "rating"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    Health check payload for GET /health.

    status is "OK" when the database answers, "UNAVAILABLE" otherwise.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: str = Field(description="OK or UNAVAILABLE")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    media: str = Field(description="Media host state: available or circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
