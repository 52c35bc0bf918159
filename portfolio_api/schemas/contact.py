from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

SubmissionMethod = Literal["appwrite", "firebase", "firestore", "mailto"]


class ContactRequest(BaseModel):
    """Raw contact form payload as posted by the site."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    name: str
    email: str
    subject: Optional[str] = Field(None, max_length=200)
    message: str = Field(..., max_length=10000)
    timestamp: Optional[str] = None
    source: Optional[str] = Field(None, max_length=100)
    userAgent: Optional[str] = Field(None, max_length=500)
    method: Optional[SubmissionMethod] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        if len(v) > 100:
            raise ValueError("Name must be no more than 100 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v: str) -> str:
        try:
            return validate_email(v, check_deliverability=False).normalized
        except EmailNotValidError:
            raise ValueError("Please enter a valid email address")

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Message must be at least 10 characters")
        return v

    @field_validator("subject", "timestamp", "source", "userAgent", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Submission(BaseModel):
    """A contact submission as sent to a backend. Immutable once built."""

    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    name: str
    email: str
    subject: str
    message: str
    timestamp: str
    user_agent: str
    source: str
    ip_address: str

    @classmethod
    def from_request(
        cls,
        request: ContactRequest,
        *,
        ip_address: str,
        user_agent: Optional[str],
        default_source: str,
    ) -> "Submission":
        return cls(
            name=request.name,
            email=request.email,
            subject=request.subject or "Contact Form Submission",
            message=request.message,
            timestamp=request.timestamp or datetime.now(timezone.utc).isoformat(),
            user_agent=request.userAgent or user_agent or "Unknown",
            source=request.source or default_source,
            ip_address=ip_address or "Unknown",
        )

    def to_document(self) -> dict:
        """Payload written to document stores (camelCase keys)."""
        return self.model_dump(by_alias=True)


class ContactResponse(BaseModel):
    success: bool
    message: str
    id: Optional[str] = None
    error: Optional[str] = None
    mailto: Optional[str] = None
