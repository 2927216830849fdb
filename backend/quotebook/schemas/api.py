"""
Quotebook Backend — Shared API Envelopes
========================================

What:  Response models shared by every route: the error body and the health
       check payload.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error body for all API errors.

    Fields:
        error: Machine-readable code (e.g., "invalid_email", "api_error")
        message: Human-readable text, shown to the user as-is
        details: Optional extra context (e.g., which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "password_too_short",
            "message": "Password must be at least 6 characters",
            "details": {"field": "password", "min_length": 6},
            "request_id": "1f0c2a9e"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """
    What:  Health check response showing service and dependency status.
    Who:   Returned by GET /health for monitoring and container probes.
    """

    status: str = Field(description="Overall service status: healthy or degraded")
    version: str = Field(description="Application version")
    backend: str = Field(description="Remote backend reachability: reachable, unreachable")
    authenticated: bool = Field(description="Whether a user session is active")
    uptime_seconds: float = Field(description="Seconds since service started")


class MessageResponse(BaseModel):
    """Plain acknowledgement for calls that return no resource."""

    message: str
