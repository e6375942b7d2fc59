"""Organization and branch models"""

import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, Numeric, Uuid
from sqlalchemy.orm import relationship

from pos_core.database import Base


class Organization(Base):
    """Restaurant group owning one or more branches"""
    __tablename__ = "organizations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    branches = relationship("Branch", back_populates="organization")
    users = relationship("User", back_populates="organization")


class Branch(Base):
    """A single physical restaurant location"""
    __tablename__ = "branches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False)
    name = Column(String(255), nullable=False)
    tax_rate = Column(Numeric(6, 4), nullable=False, default=Decimal("0.0700"))
    currency = Column(String(3), default="THB")

    # Backs sequential order numbers; incremented under a row lock
    last_order_number = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="branches")
