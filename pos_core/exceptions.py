"""Domain errors raised by the order core

Every failure the core reports carries a stable ``code`` and the HTTP status
the API layer answers with, so callers can render an actionable message.
"""

from typing import Any, Dict, Optional


class OrderCoreError(Exception):
    """Base class for all order core failures"""
    code = "order_core_error"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "detail": self.message, **self.details}


class InvalidSelection(OrderCoreError):
    """Cart line selections do not match the product's option groups"""
    code = "invalid_selection"
    status_code = 422


class InvalidPricing(OrderCoreError):
    """Resolved price is not acceptable (e.g. negative)"""
    code = "invalid_pricing"
    status_code = 422


class EmptyOrder(OrderCoreError):
    code = "empty_order"
    status_code = 422


class InvalidPromotion(OrderCoreError):
    """Promotion exists but cannot be applied right now"""
    code = "invalid_promotion"
    status_code = 422


class NotFound(OrderCoreError):
    code = "not_found"
    status_code = 404

    def __init__(self, resource: str, identifier: Optional[Any] = None):
        details: Dict[str, Any] = {"resource": resource}
        if identifier is not None:
            details["id"] = str(identifier)
        super().__init__(f"{resource} not found", **details)


class SessionClosed(OrderCoreError):
    code = "session_closed"
    status_code = 409


class ConflictError(OrderCoreError):
    """Duplicate open session, concurrent modification or a lost race"""
    code = "conflict"
    status_code = 409


class InvalidTransition(OrderCoreError):
    code = "invalid_transition"
    status_code = 409


class AlreadyFinalized(OrderCoreError):
    """Order is PAID or CANCELLED"""
    code = "already_finalized"
    status_code = 409


class Unauthorized(OrderCoreError):
    """Actor scope does not cover the requested branch or organization"""
    code = "unauthorized"
    status_code = 403


class MissingIdempotencyKey(OrderCoreError):
    code = "idempotency_key_required"
    status_code = 422
