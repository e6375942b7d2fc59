"""Celery application configuration"""

from celery import Celery
from pos_core.config import settings

# Create Celery app
celery_app = Celery(
    "pos_core",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "pos_core.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_time_limit=60,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_ignore_result=True,

    # Publishing happens inside request handling; fail fast instead of blocking
    task_publish_retry=False,
    broker_connection_timeout=2,
)
