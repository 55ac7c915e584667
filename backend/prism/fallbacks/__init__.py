"""
In-memory fallback services for unconfigured backends.
"""

from prism.fallbacks.errors import (
    EmptyCartError,
    FallbackError,
    FallbackNotActiveError,
    ProductNotFoundError,
)
from prism.fallbacks.database_fallback import DatabaseFallback
from prism.fallbacks.ecommerce_fallback import EcommerceFallback

__all__ = [
    "DatabaseFallback",
    "EcommerceFallback",
    "EmptyCartError",
    "FallbackError",
    "FallbackNotActiveError",
    "ProductNotFoundError",
]
