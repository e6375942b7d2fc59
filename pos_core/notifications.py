"""Notification events for kitchen and cashier displays

The core builds an event after each committed mutation and hands it to a
publisher. Publishing is fire-and-forget: a failure is logged and never
reaches the caller or the transaction that produced the event.
"""

import asyncio
from datetime import datetime
from functools import partial
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, Field
import structlog

logger = structlog.get_logger()

ORDER_CREATED = "order_created"
ORDER_STATUS_UPDATED = "order_status_updated"
ORDER_UPDATED = "order_updated"
ORDER_ITEM_STATUS_UPDATED = "order_item_status_updated"
QR_SESSION_OPENED = "qr_session_opened"
QR_SESSION_CLOSED = "qr_session_closed"


class BranchScope(BaseModel):
    """Fan-out scope: subscribers filter on organization/branch"""
    organization_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None


class OrderEvent(BaseModel):
    type: str
    order_id: Optional[UUID] = None
    session_id: Optional[UUID] = None
    branch_scope: BranchScope
    payload: Dict[str, Any] = {}
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


class EventPublisher:
    """Base publisher; subclasses implement send()"""

    def send(self, event: OrderEvent) -> None:
        raise NotImplementedError

    async def drain(self) -> None:
        """Wait for deliveries still in flight"""
        return None

    def publish(self, event: OrderEvent) -> None:
        try:
            self.send(event)
            logger.info(
                "Event published",
                event_type=event.type,
                order_id=str(event.order_id) if event.order_id else None,
                session_id=str(event.session_id) if event.session_id else None,
            )
        except Exception as e:
            logger.error("Failed to publish event", event_type=event.type, error=str(e))


class CeleryEventPublisher(EventPublisher):
    """Queue delivery to the notification service on the Celery worker.

    ``delay()`` is a blocking broker round-trip, so inside a running event
    loop it is handed to a worker thread and the caller returns immediately.
    """

    def __init__(self):
        self._pending = set()

    def send(self, event: OrderEvent) -> None:
        from pos_core.jobs.tasks import deliver_event

        payload = event.model_dump(mode="json")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Scripts and workers have no loop to protect
            deliver_event.delay(payload)
            return

        task = loop.create_task(asyncio.to_thread(deliver_event.delay, payload))
        self._pending.add(task)
        task.add_done_callback(partial(self._enqueued, event.type))

    def _enqueued(self, event_type: str, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Failed to queue event", event_type=event_type, error=str(error))

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


_publisher: EventPublisher = CeleryEventPublisher()


def get_publisher() -> EventPublisher:
    """FastAPI dependency returning the process-wide publisher"""
    return _publisher


def _scope(obj) -> BranchScope:
    return BranchScope(organization_id=obj.organization_id, branch_id=obj.branch_id)


def order_created(order) -> OrderEvent:
    return OrderEvent(
        type=ORDER_CREATED,
        order_id=order.id,
        branch_scope=_scope(order),
        payload={
            "order_number": order.order_number,
            "status": order.status,
            "table_id": order.table_id,
            "item_count": len(order.active_items),
            "total_amount": str(order.total_amount),
        },
    )


def order_status_updated(order, previous_status: str) -> OrderEvent:
    return OrderEvent(
        type=ORDER_STATUS_UPDATED,
        order_id=order.id,
        branch_scope=_scope(order),
        payload={
            "order_number": order.order_number,
            "previous_status": previous_status,
            "new_status": order.status,
        },
    )


def order_updated(order, reason: str) -> OrderEvent:
    return OrderEvent(
        type=ORDER_UPDATED,
        order_id=order.id,
        branch_scope=_scope(order),
        payload={
            "reason": reason,
            "order_number": order.order_number,
            "subtotal": str(order.subtotal),
            "discount_amount": str(order.discount_amount),
            "total_amount": str(order.total_amount),
        },
    )


def order_item_status_updated(order, item, previous_status: str) -> OrderEvent:
    return OrderEvent(
        type=ORDER_ITEM_STATUS_UPDATED,
        order_id=order.id,
        branch_scope=_scope(order),
        payload={
            "item_id": str(item.id),
            "item_name": item.item_name,
            "previous_status": previous_status,
            "new_status": item.item_status,
        },
    )


def qr_session_opened(session) -> OrderEvent:
    return OrderEvent(
        type=QR_SESSION_OPENED,
        session_id=session.id,
        branch_scope=_scope(session),
        payload={"table_number": session.table_number, "opened_by": session.opened_by},
    )


def qr_session_closed(session) -> OrderEvent:
    return OrderEvent(
        type=QR_SESSION_CLOSED,
        session_id=session.id,
        branch_scope=_scope(session),
        payload={"table_number": session.table_number, "closed_by": session.closed_by},
    )
