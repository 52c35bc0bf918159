from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from portfolio_api.core.config import settings

logger = logging.getLogger(__name__)


def send_email_sync(message: EmailMessage) -> None:
    if not settings.email_configured:
        raise RuntimeError("EMAIL_USER / EMAIL_PASSWORD are not configured")

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
        server.starttls()
        server.login(settings.EMAIL_USER, settings.EMAIL_PASSWORD.get_secret_value())
        server.send_message(message)


async def send_email(
    message: EmailMessage, retries: int = 2, retry_delay: float = 1.0
) -> None:
    last_error: Optional[Exception] = None
    for attempt in range(retries + 1):
        try:
            await asyncio.to_thread(send_email_sync, message)
            return
        except Exception as exc:
            last_error = exc
            logger.warning("Email send attempt %s failed: %s", attempt + 1, exc)
            if attempt < retries:
                await asyncio.sleep(retry_delay * (2 ** attempt))

    if last_error:
        raise last_error
