"""Table session model"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Uuid

from pos_core.database import Base


class TableSession(Base):
    """QR binding between a physical table and guest ordering"""
    __tablename__ = "table_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token = Column(String(128), unique=True, nullable=False)  # Used in guest-facing URLs
    table_number = Column(Integer, nullable=False)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False)
    branch_id = Column(Uuid, ForeignKey("branches.id"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # "{branch_id}:{table_number}" while open, NULL once closed.
    # The unique constraint allows one open session per table.
    open_key = Column(String(100), unique=True)

    opened_by = Column(String(100))
    closed_by = Column(String(100))
    created_at = Column(DateTime, default=datetime.utcnow)
    closed_at = Column(DateTime)

    @staticmethod
    def make_open_key(branch_id, table_number: int) -> str:
        return f"{branch_id}:{table_number}"

    @property
    def status(self) -> str:
        return "OPEN" if self.is_active else "CLOSED"
