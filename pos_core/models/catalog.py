"""Catalog models"""

import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Text, Uuid
from sqlalchemy.orm import relationship

from pos_core.database import Base


class Product(Base):
    """Sellable menu product"""
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    price = Column(Numeric(12, 2), nullable=False)  # Base price before options
    category = Column(String(100))
    image_url = Column(String(500))
    is_available = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    options = relationship(
        "ProductOption",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductOption.sort_order",
    )


class ProductOption(Base):
    """One choice inside a named option group (Size -> Large)"""
    __tablename__ = "product_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id = Column(Uuid, ForeignKey("products.id"), nullable=False)
    option_group = Column(String(100), nullable=False)  # Size, Spice Level
    option_name = Column(String(100), nullable=False)  # Large, Hot
    price_delta = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))  # May be negative
    is_required = Column(Boolean, default=False)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    product = relationship("Product", back_populates="options")
