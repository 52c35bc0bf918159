from __future__ import annotations

import uuid
from typing import Optional
from urllib.parse import quote

from portfolio_api.schemas.contact import Submission
from portfolio_api.services.adapters.base import AdapterReceipt, SubmissionAdapter


def build_mailto_link(
    contact_email: str,
    *,
    name: str = "",
    email: str = "",
    subject: Optional[str] = None,
    message: str = "",
) -> str:
    """Pre-filled mailto: URI, used as a backend and as the failure fallback."""
    subject_line = f"Contact Form: {subject or 'Contact Form Submission'}"
    body = f"Name: {name}\nEmail: {email}\n\nMessage:\n{message}"
    return (
        f"mailto:{contact_email}"
        f"?subject={quote(subject_line, safe='')}"
        f"&body={quote(body, safe='')}"
    )


class MailtoAdapter(SubmissionAdapter):
    """Writes nothing; hands the client a link to its own mail program."""

    method = "mailto"

    def __init__(self, contact_email: str):
        self.contact_email = contact_email

    def submit(self, submission: Submission) -> AdapterReceipt:
        link = build_mailto_link(
            self.contact_email,
            name=submission.name,
            email=submission.email,
            subject=submission.subject,
            message=submission.message,
        )
        return AdapterReceipt(
            id=f"mailto-{uuid.uuid4().hex[:12]}",
            method=self.method,
            message="Email client opened. Please send the email to complete your submission.",
            mailto=link,
        )
