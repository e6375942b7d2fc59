"""Database models"""

from pos_core.models.tenant import Organization, Branch
from pos_core.models.user import User, UserRole
from pos_core.models.catalog import Product, ProductOption
from pos_core.models.table_session import TableSession
from pos_core.models.promotion import Promotion, PromotionUsage, DiscountType
from pos_core.models.order import Order, OrderItem, OrderStatus, ItemStatus
from pos_core.models.payment import Payment, PaymentMethod
from pos_core.models.audit import AuditLog

__all__ = [
    "Organization",
    "Branch",
    "User",
    "UserRole",
    "Product",
    "ProductOption",
    "TableSession",
    "Promotion",
    "PromotionUsage",
    "DiscountType",
    "Order",
    "OrderItem",
    "OrderStatus",
    "ItemStatus",
    "Payment",
    "PaymentMethod",
    "AuditLog",
]
