"""Promotion models"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Uuid, UniqueConstraint,
)

from pos_core.database import Base
from pos_core.services.pricing import DiscountRule


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class Promotion(Base):
    """Discount code, unique per organization"""
    __tablename__ = "promotions"
    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_promotions_org_code"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False)
    branch_id = Column(Uuid, ForeignKey("branches.id"))  # NULL means every branch
    code = Column(String(50), nullable=False)
    name = Column(String(255), nullable=False)

    # Discount rule
    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)
    max_discount = Column(Numeric(12, 2))  # Cap for percentage discounts
    min_order_total = Column(Numeric(12, 2))

    # Usage constraints
    valid_from = Column(DateTime)
    valid_until = Column(DateTime)
    max_uses = Column(Integer)
    usage_count = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def rule(self) -> DiscountRule:
        return DiscountRule(
            discount_type=self.discount_type,
            value=self.discount_value,
            max_discount=self.max_discount,
        )


class PromotionUsage(Base):
    """One redemption of a promotion by an order"""
    __tablename__ = "promotion_usages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    promotion_id = Column(Uuid, ForeignKey("promotions.id"), nullable=False)
    order_id = Column(Uuid, ForeignKey("orders.id"), unique=True, nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False)
    used_at = Column(DateTime, default=datetime.utcnow)
    released_at = Column(DateTime)  # Set when a cancellation reverses the usage
