"""
Portfolio contact API workers package
Celery tasks for post-submission notifications
"""

from .celery_app import celery_app

__all__ = ['celery_app']
