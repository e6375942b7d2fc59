"""Table session schemas"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field


class TableSessionCreate(BaseModel):
    """Open a session for a table"""
    table_number: int = Field(..., gt=0)
    branch_id: Optional[UUID] = None


class TableSessionResponse(BaseModel):
    """Table session response"""
    id: UUID
    token: str
    table_number: int
    organization_id: UUID
    branch_id: UUID
    is_active: bool
    status: str
    created_at: datetime
    closed_at: Optional[datetime]

    class Config:
        from_attributes = True


class TableSessionListResponse(BaseModel):
    sessions: List[TableSessionResponse]
