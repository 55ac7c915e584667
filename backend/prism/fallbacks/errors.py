"""
Structured error classes for fallback services.
"""

from typing import Optional


class FallbackError(Exception):
    """Base exception for fallback service errors."""
    pass


class FallbackNotActiveError(FallbackError):
    """
    Raised when a fallback operation is called while the real service is
    configured.

    This is a programmer-contract violation: callers must check
    should_use_fallback() and route to the real client instead.
    """

    def __init__(self, service: str, operation: Optional[str] = None):
        self.service = service
        self.operation = operation
        super().__init__(
            f"{service} service is available - use real implementation"
        )

    def to_dict(self) -> dict:
        return {
            "error": "fallback_not_active",
            "service": self.service,
            "operation": self.operation,
            "message": str(self),
        }


class ProductNotFoundError(FallbackError):
    """Raised when a cart operation references an unknown demo product."""

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")

    def to_dict(self) -> dict:
        return {
            "error": "product_not_found",
            "product_id": self.product_id,
            "message": str(self),
        }


class EmptyCartError(FallbackError):
    """Raised on checkout of a cart with no lines. No order is created."""

    def __init__(self, cart_id: str):
        self.cart_id = cart_id
        super().__init__("Cart is empty")

    def to_dict(self) -> dict:
        return {
            "error": "empty_cart",
            "cart_id": self.cart_id,
            "message": str(self),
        }
