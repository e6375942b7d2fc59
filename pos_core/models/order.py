"""Order and order item models"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, JSON, Text, Integer, Numeric, Uuid, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from pos_core.database import Base
from pos_core.services.pricing import DiscountRule, compute_total


class OrderStatus(str, enum.Enum):
    """Order lifecycle states"""
    OPEN = "OPEN"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class ItemStatus(str, enum.Enum):
    """Per-item kitchen progress, independent of the order status"""
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"


# Directed lifecycle graph. PAID is only reachable through checkout.
TRANSITIONS = {
    OrderStatus.OPEN: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = {OrderStatus.PAID, OrderStatus.CANCELLED}

# Forward order of the happy path, used for the configurable checkout bound
LIFECYCLE = [
    OrderStatus.OPEN,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
]


class Order(Base):
    """Dine-in / counter orders"""
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("branch_id", "order_number", name="uq_orders_branch_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False)
    branch_id = Column(Uuid, ForeignKey("branches.id"), nullable=False)
    order_number = Column(Integer, nullable=False)

    # Table binding
    table_id = Column(String(50))
    table_session_id = Column(Uuid, ForeignKey("table_sessions.id"))

    created_by = Column(String(100))
    status = Column(String(20), nullable=False, default=OrderStatus.OPEN.value)

    # Pricing, written only by recalculate()
    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    tax = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    # Snapshots taken at creation so recalculation never depends on later edits
    tax_rate = Column(Numeric(6, 4), nullable=False)
    discount_policy = Column(String(20), nullable=False, default="before_tax")

    # At most one promotion per order
    promotion_id = Column(Uuid, ForeignKey("promotions.id"))
    promotion_code = Column(String(50))
    promotion_rule = Column(JSON)  # {"discount_type": ..., "value": ..., "max_discount": ...}

    notes = Column(Text)

    # Optimistic lock
    version = Column(Integer, nullable=False, default=1)

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    paid_at = Column(DateTime)
    cancelled_at = Column(DateTime)

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.line_number",
        cascade="all, delete-orphan",
    )
    table_session = relationship("TableSession")

    __mapper_args__ = {"version_id_col": version}

    @property
    def order_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    @property
    def is_terminal(self) -> bool:
        return self.order_status in TERMINAL_STATUSES

    @property
    def active_items(self):
        return [item for item in self.items if item.voided_at is None]

    def can_transition(self, target: OrderStatus) -> bool:
        return target in TRANSITIONS[self.order_status]

    def recalculate(self, places: int = 2) -> None:
        """Derive subtotal, discount, tax and total from the active items"""
        rule = DiscountRule.from_dict(self.promotion_rule) if self.promotion_rule else None
        totals = compute_total(
            (item.item_total for item in self.active_items),
            rule,
            self.tax_rate,
            self.discount_policy,
            places,
        )
        self.subtotal = totals.subtotal
        self.discount_amount = totals.discount_amount
        self.tax = totals.tax
        self.total_amount = totals.total_amount


class OrderItem(Base):
    """A priced ticket line; prices are frozen at creation"""
    __tablename__ = "order_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), nullable=False)
    line_number = Column(Integer, nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id"))

    item_name = Column(String(255), nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    item_total = Column(Numeric(12, 2), nullable=False)

    # [{"group": "Spice Level", "name": "Hot", "price_delta": "5.00"}, ...]
    options_json = Column(JSON, default=list)

    item_status = Column(String(20), nullable=False, default=ItemStatus.PENDING.value)
    notes = Column(Text)
    added_by = Column(String(100))

    created_at = Column(DateTime, default=datetime.utcnow)
    voided_at = Column(DateTime)  # Voided lines stay on the ticket, excluded from totals

    # Relationships
    order = relationship("Order", back_populates="items")
