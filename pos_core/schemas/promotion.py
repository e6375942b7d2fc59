"""Promotion schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field

from pos_core.models.promotion import DiscountType


class PromotionCreate(BaseModel):
    """Create promotion request"""
    code: str = Field(..., min_length=1, max_length=50)
    name: str
    branch_id: Optional[UUID] = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    max_discount: Optional[Decimal] = Field(None, gt=0)
    min_order_total: Optional[Decimal] = Field(None, ge=0)
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    max_uses: Optional[int] = Field(None, gt=0)
    is_active: bool = True


class PromotionResponse(BaseModel):
    """Promotion response"""
    id: UUID
    organization_id: UUID
    branch_id: Optional[UUID]
    code: str
    name: str
    discount_type: DiscountType
    discount_value: Decimal
    max_discount: Optional[Decimal]
    min_order_total: Optional[Decimal]
    valid_from: Optional[datetime]
    valid_until: Optional[datetime]
    max_uses: Optional[int]
    usage_count: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PromotionEvaluateRequest(BaseModel):
    """Evaluate a code against an amount without redeeming it"""
    code: str
    order_total: Decimal = Field(..., ge=0)
    branch_id: Optional[UUID] = None


class PromotionEvaluateResponse(BaseModel):
    promotion_id: UUID
    code: str
    name: str
    valid: bool = True
    discount_amount: Decimal
