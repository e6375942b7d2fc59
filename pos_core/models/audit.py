"""Audit log model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, JSON, Uuid

from pos_core.database import Base


class AuditLog(Base):
    """Audit trail for order lifecycle actions"""
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"))
    branch_id = Column(Uuid, ForeignKey("branches.id"))

    # Actor information
    actor_id = Column(String(100))  # User ID, or table session for guests
    actor_role = Column(String(50))

    # Action details
    action = Column(String(100), nullable=False)  # order_status_updated, checkout, etc.
    resource_type = Column(String(50))  # order, table_session, payment
    resource_id = Column(Uuid)

    # Change data
    data_json = Column(JSON)  # {"before": {...}, "after": {...}}

    created_at = Column(DateTime, default=datetime.utcnow)
