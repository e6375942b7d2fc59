"""Order schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, List
from uuid import UUID
from pydantic import BaseModel

from pos_core.models.order import OrderStatus, ItemStatus


class CartLine(BaseModel):
    """One cart line: product, quantity and option-group -> option name"""
    product_id: UUID
    quantity: int = 1
    selections: Dict[str, str] = {}
    notes: Optional[str] = None


class OrderCreate(BaseModel):
    """Create order request"""
    items: List[CartLine]
    branch_id: Optional[UUID] = None
    table_id: Optional[str] = None
    qr_session_token: Optional[str] = None
    notes: Optional[str] = None


class GuestOrderCreate(BaseModel):
    """Order placed by a guest through a table session link"""
    items: List[CartLine]
    notes: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    """Status transition request"""
    status: OrderStatus


class OrderItemStatusUpdate(BaseModel):
    """Per-item kitchen status update"""
    item_status: ItemStatus


class ApplyPromotionRequest(BaseModel):
    """Attach a promotion code to an open order"""
    code: str


class OrderItemResponse(BaseModel):
    """Order item in response"""
    id: UUID
    line_number: int
    product_id: Optional[UUID]
    item_name: str
    unit_price: Decimal
    quantity: int
    item_total: Decimal
    options: List[Dict[str, Any]] = []
    item_status: ItemStatus
    notes: Optional[str]
    added_by: Optional[str]
    created_at: datetime
    voided_at: Optional[datetime]

    @classmethod
    def from_item(cls, item) -> "OrderItemResponse":
        return cls(
            id=item.id,
            line_number=item.line_number,
            product_id=item.product_id,
            item_name=item.item_name,
            unit_price=item.unit_price,
            quantity=item.quantity,
            item_total=item.item_total,
            options=item.options_json or [],
            item_status=item.item_status,
            notes=item.notes,
            added_by=item.added_by,
            created_at=item.created_at,
            voided_at=item.voided_at,
        )


class OrderResponse(BaseModel):
    """Order response"""
    id: UUID
    organization_id: UUID
    branch_id: UUID
    order_number: int
    table_id: Optional[str]
    table_session_id: Optional[UUID]
    created_by: Optional[str]
    status: OrderStatus
    items: List[OrderItemResponse]
    subtotal: Decimal
    discount_amount: Decimal
    tax: Decimal
    total_amount: Decimal
    tax_rate: Decimal
    promotion_code: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime]
    cancelled_at: Optional[datetime]

    @classmethod
    def from_order(cls, order) -> "OrderResponse":
        return cls(
            id=order.id,
            organization_id=order.organization_id,
            branch_id=order.branch_id,
            order_number=order.order_number,
            table_id=order.table_id,
            table_session_id=order.table_session_id,
            created_by=order.created_by,
            status=order.status,
            items=[OrderItemResponse.from_item(item) for item in order.items],
            subtotal=order.subtotal,
            discount_amount=order.discount_amount,
            tax=order.tax,
            total_amount=order.total_amount,
            tax_rate=order.tax_rate,
            promotion_code=order.promotion_code,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            paid_at=order.paid_at,
            cancelled_at=order.cancelled_at,
        )


class OrderListResponse(BaseModel):
    """Order list"""
    items: List[OrderResponse]
    total: int
