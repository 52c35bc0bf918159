"""
Celery configuration for the portfolio contact API
Broker: Redis
Workers: submission notifications
"""

from celery import Celery

from portfolio_api.core.config import settings

celery_app = Celery(
    "portfolio_api",
    broker=settings.celery_broker_url,
    include=[
        "workers.tasks.notification",
    ],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,

    # Routing
    task_routes={
        "workers.tasks.notification.send_submission_notification": {"queue": "notification"},
    },

    # Retry policy
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_ignore_result=True,

    worker_max_tasks_per_child=1000,
)

celery_app.conf.task_default_queue = "default"
