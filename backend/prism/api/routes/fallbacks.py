"""
Fallback API routes.

Demo catalog, cart, orders and patient data served from the in-memory
fallback services while the real backends are not configured. Calling these
while the real backend is configured returns 409.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from prism.api.dependencies import get_app_context
from prism.context import AppContext
from prism.fallbacks.errors import (
    EmptyCartError,
    FallbackError,
    FallbackNotActiveError,
    ProductNotFoundError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fallback", tags=["fallback"])


# =============================================================================
# Request Models
# =============================================================================

class AddCartItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(description="New quantity; zero or less removes the line")


class CheckoutRequest(BaseModel):
    payment: Optional[Dict[str, Any]] = None


# =============================================================================
# Helper Functions
# =============================================================================

_ERROR_STATUS = {
    FallbackNotActiveError: status.HTTP_409_CONFLICT,
    ProductNotFoundError: status.HTTP_404_NOT_FOUND,
    EmptyCartError: status.HTTP_400_BAD_REQUEST,
}


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, FallbackError):
        code = _ERROR_STATUS.get(type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR)
        return HTTPException(status_code=code, detail=exc.to_dict())
    return HTTPException(
        status_code=422,
        detail=str(exc),
    )


# =============================================================================
# Routes
# =============================================================================

@router.get("/status")
async def get_fallback_status(context: AppContext = Depends(get_app_context)):
    return {
        "database": context.database_fallback.get_fallback_status(),
        "ecommerce": context.ecommerce_fallback.get_fallback_status(),
    }


@router.get("/products")
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort: Optional[str] = Query(default=None, pattern="^(price_asc|price_desc|name)$"),
    limit: Optional[int] = Query(default=None, ge=1),
    context: AppContext = Depends(get_app_context),
) -> List[Dict[str, Any]]:
    try:
        products = await context.ecommerce_fallback.get_products(
            category=category, search=search, sort=sort, limit=limit,
        )
    except FallbackError as e:
        raise _to_http_error(e)
    return [p.to_dict() for p in products]


@router.get("/products/{product_id}")
async def get_product(product_id: str, context: AppContext = Depends(get_app_context)):
    try:
        product = await context.ecommerce_fallback.get_product(product_id)
    except FallbackError as e:
        raise _to_http_error(e)
    if product is None:
        raise _to_http_error(ProductNotFoundError(product_id))
    return product.to_dict()


@router.get("/cart")
async def get_cart(context: AppContext = Depends(get_app_context)):
    try:
        cart = await context.ecommerce_fallback.get_cart()
    except FallbackError as e:
        raise _to_http_error(e)
    return cart.to_dict()


@router.post("/cart/items", status_code=status.HTTP_201_CREATED)
async def add_cart_item(body: AddCartItemRequest, context: AppContext = Depends(get_app_context)):
    try:
        cart = await context.ecommerce_fallback.add_to_cart(body.product_id, body.quantity)
    except (FallbackError, ValueError) as e:
        raise _to_http_error(e)
    return cart.to_dict()


@router.patch("/cart/items/{item_id}")
async def update_cart_item(
    item_id: str,
    body: UpdateCartItemRequest,
    context: AppContext = Depends(get_app_context),
):
    try:
        cart = await context.ecommerce_fallback.update_cart_item(item_id, body.quantity)
    except FallbackError as e:
        raise _to_http_error(e)
    return cart.to_dict()


@router.delete("/cart/items/{item_id}")
async def remove_cart_item(item_id: str, context: AppContext = Depends(get_app_context)):
    try:
        cart = await context.ecommerce_fallback.remove_from_cart(item_id)
    except FallbackError as e:
        raise _to_http_error(e)
    return cart.to_dict()


@router.delete("/cart")
async def clear_cart(context: AppContext = Depends(get_app_context)):
    try:
        cart = await context.ecommerce_fallback.clear_cart()
    except FallbackError as e:
        raise _to_http_error(e)
    return cart.to_dict()


@router.post("/checkout", status_code=status.HTTP_201_CREATED)
async def checkout(
    body: Optional[CheckoutRequest] = None,
    context: AppContext = Depends(get_app_context),
):
    try:
        order = await context.ecommerce_fallback.checkout(body.payment if body else None)
    except FallbackError as e:
        raise _to_http_error(e)
    return order.to_dict()


@router.get("/orders")
async def list_orders(context: AppContext = Depends(get_app_context)) -> List[Dict[str, Any]]:
    try:
        orders = await context.ecommerce_fallback.get_orders()
    except FallbackError as e:
        raise _to_http_error(e)
    return [o.to_dict() for o in orders]


@router.get("/profile")
async def get_profile(context: AppContext = Depends(get_app_context)):
    try:
        profile = await context.database_fallback.get_profile()
    except FallbackError as e:
        raise _to_http_error(e)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile.to_dict()


@router.get("/test-results")
async def list_test_results(context: AppContext = Depends(get_app_context)) -> List[Dict[str, Any]]:
    try:
        results = await context.database_fallback.get_test_results()
    except FallbackError as e:
        raise _to_http_error(e)
    return [r.to_dict() for r in results]


@router.get("/appointments")
async def list_appointments(context: AppContext = Depends(get_app_context)) -> List[Dict[str, Any]]:
    try:
        appointments = await context.database_fallback.get_appointments()
    except FallbackError as e:
        raise _to_http_error(e)
    return [a.to_dict() for a in appointments]
