"""Celery configuration."""
from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "commission_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=["app.tasks.async_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    # A resync holds the tenant lock; don't let a worker prefetch a second one for the same queue
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)
