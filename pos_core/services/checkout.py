"""Checkout and payment recording

Checkout is idempotent on the client-supplied key: the first request for a key
finalizes the order, every repeat returns the stored payment without touching
the order, the promotion counter or the event stream again.
"""

from datetime import datetime
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from pos_core import notifications
from pos_core.config import settings
from pos_core.database import unit_of_work
from pos_core.exceptions import (
    AlreadyFinalized,
    ConflictError,
    InvalidTransition,
    MissingIdempotencyKey,
    NotFound,
)
from pos_core.models.order import LIFECYCLE, Order, OrderStatus
from pos_core.models.payment import Payment, PaymentMethod
from pos_core.notifications import EventPublisher
from pos_core.services import orders, promotions
from pos_core.services.scope import ActorScope

logger = structlog.get_logger()


def payable_statuses():
    """Statuses from which checkout is allowed, per ``checkout_min_status``"""
    minimum = OrderStatus(settings.checkout_min_status)
    return LIFECYCLE[LIFECYCLE.index(minimum):]


async def _find_by_key(db: AsyncSession, key: str) -> Optional[Payment]:
    result = await db.execute(
        select(Payment)
        .where(Payment.idempotency_key == key)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _replay(db: AsyncSession, actor: ActorScope, payment: Payment, order_id: UUID) -> Payment:
    if payment.order_id != order_id:
        raise ConflictError(
            "Idempotency key was already used for another order",
            idempotency_key=payment.idempotency_key,
        )
    order = await orders.load_order(db, payment.order_id)
    actor.require_access(order.organization_id, order.branch_id)
    logger.info("Checkout replayed", payment_id=str(payment.id), order_id=str(order_id))
    return payment


async def checkout(
    db: AsyncSession,
    actor: ActorScope,
    order_id: UUID,
    payment_method: PaymentMethod,
    idempotency_key: str,
    publisher: EventPublisher,
    promotion_code: Optional[str] = None,
) -> Tuple[Payment, bool]:
    """Finalize an order as PAID and record its payment.

    Returns ``(payment, created)``; ``created`` is False when the key had
    already been processed for this order.
    """
    key = (idempotency_key or "").strip()
    if not key:
        raise MissingIdempotencyKey("An idempotency key is required for checkout")

    try:
        async with unit_of_work(db):
            existing = await _find_by_key(db, key)
            if existing is not None:
                return await _replay(db, actor, existing, order_id), False

            order = await orders.load_order(db, order_id, for_update=True)
            actor.require_access(order.organization_id, order.branch_id)

            if order.is_terminal:
                raise AlreadyFinalized(
                    f"Order is already {order.status}", status=order.status
                )
            if order.order_status not in payable_statuses():
                raise InvalidTransition(
                    f"Order must be at least {settings.checkout_min_status} to check out",
                    current_status=order.status,
                    requested_status=OrderStatus.PAID.value,
                )

            # Totals and any applied promotion follow the current lines
            order.recalculate(settings.currency_places)
            await promotions.revalidate(db, order)

            if promotion_code:
                await orders.attach_promotion(db, order, promotion_code)

            previous = order.status
            now = datetime.utcnow()

            payment = Payment(
                order_id=order.id,
                idempotency_key=key,
                amount=order.total_amount,
                subtotal=order.subtotal,
                discount_amount=order.discount_amount,
                tax=order.tax,
                payment_method=PaymentMethod(payment_method).value,
                promotion_code=order.promotion_code,
                created_by=actor.actor_id,
                completed_at=now,
            )
            db.add(payment)

            order.status = OrderStatus.PAID.value
            order.paid_at = now
            order.updated_at = now

            orders.record_audit(
                db,
                actor,
                order,
                "order_paid",
                {"status": previous},
                {
                    "status": order.status,
                    "total_amount": str(order.total_amount),
                    "payment_method": payment.payment_method,
                },
            )
    except ConflictError:
        # A concurrent request with the same key may have won the race
        winner = await _find_by_key(db, key)
        if winner is None or winner.order_id != order_id:
            raise
        return await _replay(db, actor, winner, order_id), False

    logger.info(
        "Order paid",
        order_id=str(order.id),
        payment_id=str(payment.id),
        amount=str(payment.amount),
        payment_method=payment.payment_method,
    )
    publisher.publish(notifications.order_status_updated(order, previous))
    return payment, True


async def get_payment(db: AsyncSession, actor: ActorScope, payment_id: UUID) -> Payment:
    result = await db.execute(select(Payment).where(Payment.id == payment_id))
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFound("Payment", payment_id)

    order = await orders.load_order(db, payment.order_id)
    actor.require_access(order.organization_id, order.branch_id)
    return payment
