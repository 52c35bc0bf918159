from __future__ import annotations

import asyncio
import logging
from email.message import EmailMessage
from typing import Any, Dict

from portfolio_api.core.config import settings
from portfolio_api.core.email import send_email
from portfolio_api.schemas.contact import Submission

logger = logging.getLogger(__name__)


class NotificationService:
    """Emails the site owner about each accepted submission."""

    def __init__(self, app_settings=settings):
        self.settings = app_settings

    @property
    def enabled(self) -> bool:
        return self.settings.NOTIFICATIONS_ENABLED and self.settings.email_configured

    def build_email_message(self, submission_id: str, submission: Submission) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.settings.EMAIL_USER or self.settings.CONTACT_EMAIL
        msg["To"] = self.settings.CONTACT_EMAIL
        msg["Reply-To"] = submission.email
        msg["Subject"] = f"New contact form submission: {submission.subject}"

        body_lines = [
            "New contact form submission:",
            f"ID: {submission_id}",
            "",
            f"Name: {submission.name}",
            f"Email: {submission.email}",
            f"Subject: {submission.subject}",
            "",
            "Message:",
            submission.message,
            "",
            f"Timestamp: {submission.timestamp}",
            f"Source: {submission.source}",
            f"IP Address: {submission.ip_address}",
            f"User Agent: {submission.user_agent}",
        ]
        msg.set_content("\n".join(body_lines))
        return msg

    def _enqueue(self, submission_id: str, submission_data: Dict[str, Any]) -> None:
        # Imported lazily so the API does not need the worker package loaded
        from workers.tasks.notification import send_submission_notification

        send_submission_notification.delay(
            submission_id=submission_id, submission_data=submission_data
        )

    async def notify(self, submission: Submission, submission_id: str) -> str:
        """Queue the notification, falling back to direct SMTP. Returns the path used."""
        if not self.enabled:
            logger.debug("Notifications disabled, skipping id=%s", submission_id)
            return "disabled"

        try:
            await asyncio.to_thread(self._enqueue, submission_id, submission.to_document())
            delivery_path = "queued"
        except Exception as enqueue_exc:
            logger.warning(
                "Notification enqueue failed id=%s error=%s",
                submission_id,
                enqueue_exc,
                extra={"event": "notification_enqueue_failed", "submission_id": submission_id},
            )
            await send_email(self.build_email_message(submission_id, submission))
            delivery_path = "smtp_fallback"

        logger.info(
            "Notification dispatched id=%s delivery_path=%s",
            submission_id,
            delivery_path,
            extra={"event": "notification_dispatched", "delivery_path": delivery_path},
        )
        return delivery_path
