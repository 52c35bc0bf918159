"""
Error response schemas for the contact API.

Every error body shares the contact envelope `{success, error, message}`;
validation errors add field-level messages, rate limiting adds the reset time,
and pipeline failures add a mailto fallback link.
"""
from typing import List, Optional

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A single field that failed validation."""

    field: str = Field(..., description="Name of the offending field", examples=["email"])
    message: str = Field(
        ..., description="Human-readable error message",
        examples=["Please enter a valid email address"],
    )


class ErrorResponse(BaseModel):
    """Standard error response format."""

    success: bool = False
    error: str = Field(
        ...,
        description="Error code",
        examples=["VALIDATION_ERROR", "RATE_LIMIT_EXCEEDED", "NETWORK_ERROR"],
    )
    message: str = Field(..., description="Human-readable error message")
    mailto: Optional[str] = Field(
        None, description="mailto: link offered as a last-resort fallback"
    )


class ValidationErrorResponse(ErrorResponse):
    """400 Validation error response."""

    error: str = "VALIDATION_ERROR"
    errors: List[FieldError] = Field(default_factory=list)


class RateLimitErrorResponse(ErrorResponse):
    """429 Rate limit exceeded response."""

    error: str = "RATE_LIMIT_EXCEEDED"
    resetTime: Optional[str] = Field(None, description="When the window resets (ISO-8601)")
    retryAfter: Optional[int] = Field(None, description="Seconds until the window resets")


# Common error responses for OpenAPI documentation
ERROR_RESPONSES = {
    400: {"model": ValidationErrorResponse, "description": "Validation Error"},
    405: {"model": ErrorResponse, "description": "Method Not Allowed"},
    429: {"model": RateLimitErrorResponse, "description": "Rate Limit Exceeded"},
    500: {"model": ErrorResponse, "description": "Submission Failed"},
}
