"""Payment model"""

import enum
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Uuid

from pos_core.database import Base


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    QR = "QR"
    TRANSFER = "TRANSFER"


class Payment(Base):
    """Successful checkout of an order"""
    __tablename__ = "payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id = Column(Uuid, ForeignKey("orders.id"), unique=True, nullable=False)
    idempotency_key = Column(String(255), unique=True, nullable=False)

    # Figures charged, copied from the order at finalization
    amount = Column(Numeric(12, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="SUCCESS")
    promotion_code = Column(String(50))

    created_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
