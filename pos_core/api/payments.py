"""Payment API endpoints"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from pos_core.api.auth import get_actor_scope
from pos_core.database import get_db
from pos_core.notifications import EventPublisher, get_publisher
from pos_core.schemas.payment import CheckoutRequest, PaymentResponse
from pos_core.services import checkout as checkout_service
from pos_core.services.scope import ActorScope

router = APIRouter()


@router.post("/checkout", response_model=PaymentResponse, status_code=201)
async def checkout(
    request: CheckoutRequest,
    response: Response,
    actor: ActorScope = Depends(get_actor_scope),
    publisher: EventPublisher = Depends(get_publisher),
    db: AsyncSession = Depends(get_db),
):
    """Pay for an order. Repeating a request with the same key returns the first payment."""
    payment, created = await checkout_service.checkout(
        db,
        actor,
        request.order_id,
        request.payment_method,
        request.idempotency_key,
        publisher,
        promotion_code=request.promotion_code,
    )
    if not created:
        response.status_code = 200
    return payment


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    actor: ActorScope = Depends(get_actor_scope),
    db: AsyncSession = Depends(get_db),
):
    return await checkout_service.get_payment(db, actor, payment_id)
