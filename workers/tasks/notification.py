from typing import Any, Dict

from celery import shared_task
from celery.utils.log import get_task_logger

from portfolio_api.core.email import send_email_sync
from portfolio_api.schemas.contact import Submission
from portfolio_api.services.notification_service import NotificationService

logger = get_task_logger(__name__)


@shared_task(
    bind=True,
    name="workers.tasks.notification.send_submission_notification",
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
    ignore_result=True,
)
def send_submission_notification(
    self, submission_id: str, submission_data: Dict[str, Any]
) -> str:
    """
    Send the owner notification for an accepted submission via SMTP.
    The submission travels as its camelCase document dict.
    """
    logger.info("Processing notification task for submission_id=%s", submission_id)

    submission = Submission.model_validate(submission_data)
    message = NotificationService().build_email_message(submission_id, submission)
    send_email_sync(message)

    logger.info("Notification sent for submission_id=%s", submission_id)
    return "sent"
