"""Order aggregate

Order creation, item changes and status transitions. Every mutation runs in
one unit of work against a locked, version-checked order row and publishes
its notification only after the commit succeeded.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import structlog

from pos_core import notifications
from pos_core.config import settings
from pos_core.database import unit_of_work
from pos_core.exceptions import (
    AlreadyFinalized,
    ConflictError,
    EmptyOrder,
    InvalidTransition,
    NotFound,
)
from pos_core.models.audit import AuditLog
from pos_core.models.catalog import Product
from pos_core.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    ItemStatus,
    TERMINAL_STATUSES,
)
from pos_core.notifications import EventPublisher
from pos_core.services import pricing, promotions, table_sessions
from pos_core.services.scope import ActorScope

logger = structlog.get_logger()


async def load_order(db: AsyncSession, order_id: UUID, for_update: bool = False) -> Order:
    query = select(Order).where(Order.id == order_id).options(selectinload(Order.items))
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFound("Order", order_id)
    return order


async def _load_scoped_order(
    db: AsyncSession, actor: ActorScope, order_id: UUID, for_update: bool = True
) -> Order:
    order = await load_order(db, order_id, for_update=for_update)
    actor.require_access(order.organization_id, order.branch_id)
    return order


def record_audit(db: AsyncSession, actor: ActorScope, order: Order, action: str, before: Dict, after: Dict) -> None:
    db.add(
        AuditLog(
            organization_id=order.organization_id,
            branch_id=order.branch_id,
            actor_id=actor.actor_id,
            actor_role=actor.role,
            action=action,
            resource_type="order",
            resource_id=order.id,
            data_json={"before": before, "after": after},
        )
    )


async def price_lines(
    db: AsyncSession, organization_id: UUID, lines: Sequence
) -> List[Tuple[Product, pricing.LinePrice, object]]:
    """Price every cart line before anything is written"""
    product_ids = {line.product_id for line in lines}
    result = await db.execute(
        select(Product)
        .where(Product.id.in_(product_ids), Product.organization_id == organization_id)
        .options(selectinload(Product.options))
    )
    products = {product.id: product for product in result.scalars().all()}

    priced = []
    for line in lines:
        product = products.get(line.product_id)
        if product is None:
            raise NotFound("Product", line.product_id)
        priced.append((product, pricing.price(product, line.quantity, line.selections), line))
    return priced


def _build_items(priced: Iterable, start: int, added_by: Optional[str]) -> List[OrderItem]:
    return [
        OrderItem(
            line_number=start + index,
            product_id=product.id,
            item_name=product.name,
            unit_price=line_price.unit_price,
            quantity=line_price.quantity,
            item_total=line_price.item_total,
            options_json=[option.to_dict() for option in line_price.options],
            item_status=ItemStatus.PENDING.value,
            notes=getattr(line, "notes", None),
            added_by=added_by,
        )
        for index, (product, line_price, line) in enumerate(priced)
    ]


async def create_order(
    db: AsyncSession,
    actor: ActorScope,
    lines: Sequence,
    publisher: EventPublisher,
    branch_id: Optional[UUID] = None,
    table_id: Optional[str] = None,
    qr_session_token: Optional[str] = None,
    created_by: Optional[str] = None,
    notes: Optional[str] = None,
) -> Order:
    """Validate, price and persist a new OPEN order atomically"""
    if not lines:
        raise EmptyOrder("An order needs at least one item")

    async with unit_of_work(db):
        session = None
        if qr_session_token:
            session = await table_sessions.require_open(db, qr_session_token)
            if branch_id is not None and branch_id != session.branch_id:
                raise NotFound("Table session")
            if table_id is not None and str(table_id) != str(session.table_number):
                raise ConflictError(
                    "Table does not match the table session",
                    table_id=table_id,
                    table_number=session.table_number,
                )
            branch_id = session.branch_id
            table_id = str(session.table_number)

        branch = await table_sessions.load_branch(db, actor, branch_id, for_update=True)
        priced = await price_lines(db, branch.organization_id, lines)

        branch.last_order_number = (branch.last_order_number or 0) + 1

        order = Order(
            organization_id=branch.organization_id,
            branch_id=branch.id,
            order_number=branch.last_order_number,
            table_id=table_id,
            table_session_id=session.id if session else None,
            created_by=created_by or actor.actor_id,
            status=OrderStatus.OPEN.value,
            tax_rate=branch.tax_rate,
            discount_policy=settings.discount_policy,
            notes=notes,
        )
        order.items = _build_items(priced, 1, order.created_by)
        order.recalculate(settings.currency_places)
        db.add(order)

    logger.info(
        "Order created",
        order_id=str(order.id),
        order_number=order.order_number,
        branch_id=str(order.branch_id),
        total_amount=str(order.total_amount),
    )
    publisher.publish(notifications.order_created(order))
    return order


async def create_guest_order(
    db: AsyncSession,
    token: str,
    lines: Sequence,
    publisher: EventPublisher,
    notes: Optional[str] = None,
) -> Order:
    """Order placed from a guest device; scope comes from the table session"""
    session = await table_sessions.require_open(db, token)
    actor = ActorScope.guest(session)
    return await create_order(
        db,
        actor,
        lines,
        publisher,
        branch_id=session.branch_id,
        qr_session_token=token,
        created_by=actor.actor_id,
        notes=notes,
    )


async def get_order(db: AsyncSession, actor: ActorScope, order_id: UUID) -> Order:
    return await _load_scoped_order(db, actor, order_id, for_update=False)


async def list_orders(
    db: AsyncSession,
    actor: ActorScope,
    status: Optional[OrderStatus] = None,
    table_id: Optional[str] = None,
    branch_id: Optional[UUID] = None,
    limit: int = 100,
) -> Tuple[List[Order], int]:
    query = actor.filter(select(Order), Order, branch_id)
    count_query = actor.filter(select(func.count(Order.id)), Order, branch_id)

    if status:
        query = query.where(Order.status == status.value)
        count_query = count_query.where(Order.status == status.value)

    if table_id:
        query = query.where(Order.table_id == table_id)
        count_query = count_query.where(Order.table_id == table_id)

    total = (await db.execute(count_query)).scalar()

    query = (
        query.options(selectinload(Order.items))
        .order_by(Order.created_at.desc(), Order.order_number.desc())
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


def _require_mutable(order: Order) -> None:
    if order.is_terminal:
        raise AlreadyFinalized(
            f"Order is {order.status} and can no longer be changed", status=order.status
        )


async def add_item(
    db: AsyncSession,
    actor: ActorScope,
    order_id: UUID,
    line,
    publisher: EventPublisher,
) -> Order:
    async with unit_of_work(db):
        order = await _load_scoped_order(db, actor, order_id)
        _require_mutable(order)

        priced = await price_lines(db, order.organization_id, [line])
        next_line = max((item.line_number for item in order.items), default=0) + 1
        order.items.extend(_build_items(priced, next_line, actor.actor_id))
        order.recalculate(settings.currency_places)
        order.updated_at = datetime.utcnow()

    logger.info("Order item added", order_id=str(order.id), product_id=str(line.product_id))
    publisher.publish(notifications.order_updated(order, "item_added"))
    return order


async def void_item(
    db: AsyncSession,
    actor: ActorScope,
    order_id: UUID,
    item_id: UUID,
    publisher: EventPublisher,
) -> Order:
    """Void a line; it stays on the ticket but leaves the totals"""
    async with unit_of_work(db):
        order = await _load_scoped_order(db, actor, order_id)
        _require_mutable(order)

        item = next((i for i in order.active_items if i.id == item_id), None)
        if item is None:
            raise NotFound("Order item", item_id)
        if len(order.active_items) == 1:
            raise EmptyOrder("Cannot remove the last item; cancel the order instead")

        item.voided_at = datetime.utcnow()
        order.recalculate(settings.currency_places)
        await promotions.revalidate(db, order)
        order.updated_at = datetime.utcnow()

    logger.info("Order item voided", order_id=str(order.id), item_id=str(item_id))
    publisher.publish(notifications.order_updated(order, "item_voided"))
    return order


async def update_item_status(
    db: AsyncSession,
    actor: ActorScope,
    order_id: UUID,
    item_id: UUID,
    item_status: ItemStatus,
    publisher: EventPublisher,
) -> Order:
    """Kitchen progress for one line, independent of the order status"""
    async with unit_of_work(db):
        order = await _load_scoped_order(db, actor, order_id)
        _require_mutable(order)

        item = next((i for i in order.active_items if i.id == item_id), None)
        if item is None:
            raise NotFound("Order item", item_id)

        previous = item.item_status
        item.item_status = ItemStatus(item_status).value
        order.updated_at = datetime.utcnow()

    publisher.publish(notifications.order_item_status_updated(order, item, previous))
    return order


async def apply_promotion(
    db: AsyncSession,
    actor: ActorScope,
    order_id: UUID,
    code: str,
    publisher: EventPublisher,
) -> Order:
    """Attach a promotion before checkout. Re-applying the same code is a no-op."""
    async with unit_of_work(db):
        order = await _load_scoped_order(db, actor, order_id)
        _require_mutable(order)

        applied = await attach_promotion(db, order, code)
        if applied:
            order.updated_at = datetime.utcnow()

    if applied:
        publisher.publish(notifications.order_updated(order, "promotion_applied"))
    return order


async def attach_promotion(db: AsyncSession, order: Order, code: str) -> bool:
    """Redeem ``code`` on ``order``; False if that code is already applied"""
    normalized = promotions.normalize_code(code)
    if order.promotion_id is not None:
        if order.promotion_code == normalized:
            return False
        raise ConflictError(
            "Order already has a promotion applied",
            applied_code=order.promotion_code,
        )

    promotion = await promotions.find_promotion(db, order.organization_id, order.branch_id, normalized)
    await promotions.redeem(db, promotion, order)
    return True


async def transition_order(
    db: AsyncSession,
    actor: ActorScope,
    order_id: UUID,
    target: OrderStatus,
    publisher: EventPublisher,
) -> Order:
    """Move an order along the lifecycle graph.

    PAID is reached only through checkout. Cancelling releases any promotion
    usage and recomputes the totals.
    """
    target = OrderStatus(target)

    async with unit_of_work(db):
        order = await _load_scoped_order(db, actor, order_id)
        previous = order.order_status

        if previous in TERMINAL_STATUSES:
            raise InvalidTransition(
                f"Order is {previous.value}; no further transitions are allowed",
                current_status=previous.value,
                requested_status=target.value,
            )
        if target == OrderStatus.PAID:
            raise InvalidTransition(
                "Orders are marked PAID through checkout",
                current_status=previous.value,
                requested_status=target.value,
            )
        if not order.can_transition(target):
            raise InvalidTransition(
                f"Cannot move order from {previous.value} to {target.value}",
                current_status=previous.value,
                requested_status=target.value,
            )

        before = {"status": previous.value, "total_amount": str(order.total_amount)}
        now = datetime.utcnow()

        if target == OrderStatus.CANCELLED:
            await promotions.release(db, order)
            order.cancelled_at = now

        order.status = target.value
        order.updated_at = now

        record_audit(
            db,
            actor,
            order,
            "order_status_updated",
            before,
            {"status": order.status, "total_amount": str(order.total_amount)},
        )

    logger.info(
        "Order status updated",
        order_id=str(order.id),
        previous_status=previous.value,
        new_status=order.status,
    )
    publisher.publish(notifications.order_status_updated(order, previous.value))
    return order
