"""Payment schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from pos_core.models.payment import PaymentMethod


class CheckoutRequest(BaseModel):
    """Checkout request"""
    order_id: UUID
    payment_method: PaymentMethod
    idempotency_key: str = Field(..., min_length=1, max_length=255)
    promotion_code: Optional[str] = None


class PaymentResponse(BaseModel):
    """Checkout result"""
    id: UUID
    order_id: UUID
    idempotency_key: str
    amount: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    tax: Decimal
    payment_method: PaymentMethod
    status: str
    promotion_code: Optional[str]
    created_at: datetime
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True
