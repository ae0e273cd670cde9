"""
RecipeBox — Shared Response Schemas
===================================

Error envelope, health check, app info/configuration.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "The recipe id in the path does not match the one in the body",
            "details": {"field": "id"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    driver: str = Field(description="Configured database driver")
    uptime_seconds: float = Field(description="Seconds since service started")


class AppInfo(BaseModel):
    version: str
    copyright: str


class AppConfigurationSchema(BaseModel):
    title: str = Field(min_length=1, description="Application title shown in the UI")

    model_config = {"from_attributes": True}
