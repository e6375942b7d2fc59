"""Order API endpoints"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pos_core.api.auth import get_actor_scope
from pos_core.database import get_db
from pos_core.models.order import OrderStatus
from pos_core.notifications import EventPublisher, get_publisher
from pos_core.schemas.order import (
    ApplyPromotionRequest,
    CartLine,
    OrderCreate,
    OrderItemStatusUpdate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from pos_core.services import orders
from pos_core.services.scope import ActorScope

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=201)
async def create_order(
    order_data: OrderCreate,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Create a new order from staff"""
    order = await orders.create_order(
        db,
        actor,
        order_data.items,
        publisher,
        branch_id=order_data.branch_id,
        table_id=order_data.table_id,
        qr_session_token=order_data.qr_session_token,
        notes=order_data.notes,
    )
    return OrderResponse.from_order(order)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatus] = None,
    table_id: Optional[str] = None,
    branch_id: Optional[UUID] = None,
    limit: int = Query(100, ge=1, le=500),
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """List orders visible to the caller"""
    items, total = await orders.list_orders(
        db, actor, status=status, table_id=table_id, branch_id=branch_id, limit=limit
    )
    return OrderListResponse(
        items=[OrderResponse.from_order(order) for order in items],
        total=total,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    """Get order details"""
    order = await orders.get_order(db, actor, order_id)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: UUID,
    status_update: OrderStatusUpdate,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Move an order to its next status or cancel it"""
    order = await orders.transition_order(db, actor, order_id, status_update.status, publisher)
    return OrderResponse.from_order(order)


@router.post("/{order_id}/items", response_model=OrderResponse, status_code=201)
async def add_order_item(
    order_id: UUID,
    line: CartLine,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    order = await orders.add_item(db, actor, order_id, line, publisher)
    return OrderResponse.from_order(order)


@router.delete("/{order_id}/items/{item_id}", response_model=OrderResponse)
async def void_order_item(
    order_id: UUID,
    item_id: UUID,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    order = await orders.void_item(db, actor, order_id, item_id, publisher)
    return OrderResponse.from_order(order)


@router.put("/{order_id}/items/{item_id}/status", response_model=OrderResponse)
async def update_order_item_status(
    order_id: UUID,
    item_id: UUID,
    status_update: OrderItemStatusUpdate,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Kitchen progress for a single item"""
    order = await orders.update_item_status(
        db, actor, order_id, item_id, status_update.item_status, publisher
    )
    return OrderResponse.from_order(order)


@router.post("/{order_id}/promotion", response_model=OrderResponse)
async def apply_order_promotion(
    order_id: UUID,
    request: ApplyPromotionRequest,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    order = await orders.apply_promotion(db, actor, order_id, request.code, publisher)
    return OrderResponse.from_order(order)
