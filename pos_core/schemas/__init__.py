"""Pydantic schemas for request/response validation"""

from pos_core.schemas.auth import (
    Token,
    TokenPayload,
    LoginRequest,
    RefreshRequest,
    UserResponse,
)
from pos_core.schemas.catalog import (
    ProductCreate,
    ProductResponse,
    ProductOptionCreate,
    ProductOptionResponse,
)
from pos_core.schemas.order import (
    CartLine,
    OrderCreate,
    GuestOrderCreate,
    OrderStatusUpdate,
    OrderItemStatusUpdate,
    ApplyPromotionRequest,
    OrderItemResponse,
    OrderResponse,
    OrderListResponse,
)
from pos_core.schemas.payment import (
    CheckoutRequest,
    PaymentResponse,
)
from pos_core.schemas.table_session import (
    TableSessionCreate,
    TableSessionResponse,
    TableSessionListResponse,
)
from pos_core.schemas.promotion import (
    PromotionCreate,
    PromotionResponse,
    PromotionEvaluateRequest,
    PromotionEvaluateResponse,
)

__all__ = [
    "Token",
    "TokenPayload",
    "LoginRequest",
    "RefreshRequest",
    "UserResponse",
    "ProductCreate",
    "ProductResponse",
    "ProductOptionCreate",
    "ProductOptionResponse",
    "CartLine",
    "OrderCreate",
    "GuestOrderCreate",
    "OrderStatusUpdate",
    "OrderItemStatusUpdate",
    "ApplyPromotionRequest",
    "OrderItemResponse",
    "OrderResponse",
    "OrderListResponse",
    "CheckoutRequest",
    "PaymentResponse",
    "TableSessionCreate",
    "TableSessionResponse",
    "TableSessionListResponse",
    "PromotionCreate",
    "PromotionResponse",
    "PromotionEvaluateRequest",
    "PromotionEvaluateResponse",
]
