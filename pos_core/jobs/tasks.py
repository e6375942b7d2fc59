"""Background job tasks"""

import httpx
import structlog

from pos_core.jobs.celery_app import celery_app
from pos_core.config import settings

logger = structlog.get_logger()


@celery_app.task(name="deliver_event", bind=True, max_retries=5, default_retry_delay=2)
def deliver_event(self, event: dict):
    """Forward an order/session event to the notification service"""
    logger.info(
        "Delivering event",
        event_type=event.get("type"),
        order_id=event.get("order_id"),
        session_id=event.get("session_id"),
    )

    try:
        response = httpx.post(
            f"{settings.notification_service_url}/api/events",
            json=event,
            timeout=settings.notification_timeout_seconds,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(
            "Event delivery failed",
            event_type=event.get("type"),
            attempt=self.request.retries,
            error=str(e),
        )
        raise self.retry(exc=e)

    logger.info("Event delivered", event_type=event.get("type"))
