"""Table session (QR ordering) API endpoints

Staff open and close sessions; guests holding a session token may look the
session up and place orders against it without logging in.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pos_core.api.auth import get_actor_scope
from pos_core.database import get_db
from pos_core.notifications import EventPublisher, get_publisher
from pos_core.schemas.order import GuestOrderCreate, OrderResponse
from pos_core.schemas.table_session import (
    TableSessionCreate,
    TableSessionListResponse,
    TableSessionResponse,
)
from pos_core.services import orders, table_sessions
from pos_core.services.scope import ActorScope

router = APIRouter()


@router.post("", response_model=TableSessionResponse, status_code=201)
async def open_session(
    session_data: TableSessionCreate,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Open a session for a table"""
    return await table_sessions.create_session(
        db, actor, session_data.table_number, publisher, branch_id=session_data.branch_id
    )


@router.get("", response_model=TableSessionListResponse)
async def list_sessions(
    status: str = table_sessions.OPEN,
    branch_id: Optional[UUID] = None,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    sessions = await table_sessions.list_sessions(db, actor, status=status, branch_id=branch_id)
    return TableSessionListResponse(
        sessions=[TableSessionResponse.model_validate(session) for session in sessions]
    )


@router.put("/{session_id}/close", response_model=TableSessionResponse)
async def close_session(
    session_id: UUID,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Close a session; closing twice is harmless"""
    return await table_sessions.close_session(db, actor, session_id, publisher)


@router.get("/token/{token}", response_model=TableSessionResponse)
async def resolve_session(
    token: str,
    db: AsyncSession = Depends(get_db),
):
    """Public lookup used by the guest ordering page"""
    return await table_sessions.resolve(db, token)


@router.post("/token/{token}/orders", response_model=OrderResponse, status_code=201)
async def create_guest_order(
    token: str,
    order_data: GuestOrderCreate,
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Place an order as a guest through an open table session"""
    order = await orders.create_guest_order(
        db, token, order_data.items, publisher, notes=order_data.notes
    )
    return OrderResponse.from_order(order)
