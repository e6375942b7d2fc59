"""Catalog schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from pydantic import BaseModel, Field


class ProductOptionCreate(BaseModel):
    """Create product option"""
    option_group: str
    option_name: str
    price_delta: Decimal = Decimal("0")
    is_required: bool = False
    sort_order: int = 0


class ProductOptionResponse(BaseModel):
    """Product option response"""
    id: UUID
    option_group: str
    option_name: str
    price_delta: Decimal
    is_required: bool
    sort_order: int

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    """Create product request"""
    name: str
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    category: Optional[str] = None
    image_url: Optional[str] = None
    is_available: bool = True
    sort_order: int = 0
    options: List[ProductOptionCreate] = []


class ProductResponse(BaseModel):
    """Product response"""
    id: UUID
    organization_id: UUID
    name: str
    description: Optional[str]
    price: Decimal
    category: Optional[str]
    image_url: Optional[str]
    is_available: bool
    sort_order: int
    options: List[ProductOptionResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
