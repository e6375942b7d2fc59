"""Authentication schemas"""

from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr

from pos_core.models.user import UserRole


class Token(BaseModel):
    """JWT token response"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    role: UserRole
    organization_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None


class TokenPayload(BaseModel):
    """JWT token payload"""
    sub: UUID  # User ID
    type: str  # "access" or "refresh"
    organization_id: Optional[UUID] = None
    branch_id: Optional[UUID] = None
    role: Optional[UserRole] = None  # absent on refresh tokens
    exp: datetime


class LoginRequest(BaseModel):
    """Login request"""
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    """Token refresh request"""
    refresh_token: str


class UserResponse(BaseModel):
    """User response"""
    id: UUID
    email: str
    full_name: Optional[str]
    role: UserRole
    organization_id: Optional[UUID]
    branch_id: Optional[UUID]
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime]

    class Config:
        from_attributes = True
