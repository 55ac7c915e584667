"""
E-commerce fallback service.

Demo product catalog, cart and checkout used when the commerce engine is not
configured. The catalog is immutable. The cart is a single process-wide
structure; every mutation ends with Cart.recalculate(), so subtotal, tax and
grand total are always rebuilt from the item list and cannot drift.

Filters in get_products compose in a fixed order:
category -> search -> sort -> limit.
"""

import logging
import time
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

from prism.fallbacks.base import FallbackService
from prism.fallbacks.errors import EmptyCartError, ProductNotFoundError
from prism.fallbacks.models import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductDetails,
    StockStatus,
    utc_now,
)
from prism.platform.deployment_config import Service

logger = logging.getLogger(__name__)

SORT_PRICE_ASC = "price_asc"
SORT_PRICE_DESC = "price_desc"
SORT_NAME = "name"


def _product(
    id: str,
    name: str,
    description: str,
    price: str,
    category: str,
    tags: tuple,
    image: str,
    image_alt: str,
    stock_level: int,
    test_type: str,
    turnaround_time: str,
    fasting_required: bool,
    preparation_instructions: tuple,
) -> Product:
    return Product(
        id=id,
        name=name,
        description=description,
        price=Decimal(price),
        category=category,
        tags=tags,
        image_url=f"/images/products/{image}",
        image_alt=image_alt,
        stock_status=StockStatus.IN_STOCK,
        stock_level=stock_level,
        details=ProductDetails(
            test_type=test_type,
            sample_type="Blood Draw",
            turnaround_time=turnaround_time,
            fasting_required=fasting_required,
            preparation_instructions=preparation_instructions,
        ),
    )


DEMO_PRODUCTS = (
    _product(
        id="prod-routine-panel",
        name="Routine Self-care Panel",
        description=(
            "Essential health monitoring with comprehensive blood work including CBC, "
            "metabolic panel, and lipid profile. Perfect for routine wellness tracking."
        ),
        price="59.00",
        category="routine",
        tags=("popular", "essential", "comprehensive"),
        image="routine-panel.jpg",
        image_alt="Routine Health Panel",
        stock_level=100,
        test_type="Blood Panel",
        turnaround_time="2-3 business days",
        fasting_required=True,
        preparation_instructions=(
            "Fast for 12 hours before test",
            "Stay hydrated with water only",
            "Avoid alcohol 24 hours prior",
            "Take medications as prescribed",
        ),
    ),
    _product(
        id="prod-hormone-panel",
        name="General Hormone Panel",
        description=(
            "Comprehensive hormone analysis including testosterone, cortisol, thyroid "
            "function, and reproductive hormones. Ideal for hormone optimization."
        ),
        price="89.00",
        category="hormones",
        tags=("popular", "hormone", "optimization"),
        image="hormone-panel.jpg",
        image_alt="Hormone Analysis Panel",
        stock_level=85,
        test_type="Hormone Analysis",
        turnaround_time="3-5 business days",
        fasting_required=False,
        preparation_instructions=(
            "Best collected in early morning",
            "Avoid strenuous exercise 24 hours prior",
            "Women: timing depends on cycle phase",
            "Continue medications unless advised otherwise",
        ),
    ),
    _product(
        id="prod-comprehensive-health",
        name="Comprehensive Health Assessment",
        description=(
            "Complete wellness evaluation with 50+ biomarkers covering cardiovascular, "
            "metabolic, immune, and nutritional health."
        ),
        price="119.00",
        category="comprehensive",
        tags=("comprehensive", "premium", "detailed"),
        image="comprehensive-health.jpg",
        image_alt="Comprehensive Health Assessment",
        stock_level=75,
        test_type="Comprehensive Panel",
        turnaround_time="3-5 business days",
        fasting_required=True,
        preparation_instructions=(
            "Fast for 12 hours before test",
            "Avoid supplements 48 hours prior",
            "Stay well-hydrated",
            "Get adequate sleep night before",
        ),
    ),
    _product(
        id="prod-male-hormone",
        name="Male Hormone Optimization Panel",
        description=(
            "Targeted hormone analysis for men including total/free testosterone, DHEA, "
            "growth hormone markers, and thyroid function."
        ),
        price="99.00",
        category="gender-specific",
        tags=("male", "hormone", "optimization", "testosterone"),
        image="male-hormone.jpg",
        image_alt="Male Hormone Panel",
        stock_level=60,
        test_type="Male Hormone Panel",
        turnaround_time="3-5 business days",
        fasting_required=False,
        preparation_instructions=(
            "Collect between 7-10 AM for best results",
            "Avoid intense workouts 24 hours prior",
            "Maintain regular sleep schedule",
            "Continue all medications",
        ),
    ),
    _product(
        id="prod-performance",
        name="Athletic Performance & Recovery",
        description=(
            "Specialized testing for athletes and fitness enthusiasts including muscle "
            "markers, inflammation, recovery metrics, and performance indicators."
        ),
        price="149.00",
        category="performance",
        tags=("athletic", "performance", "recovery", "specialized"),
        image="performance-panel.jpg",
        image_alt="Athletic Performance Panel",
        stock_level=45,
        test_type="Performance Panel",
        turnaround_time="3-5 business days",
        fasting_required=True,
        preparation_instructions=(
            "Fast for 8-10 hours before test",
            "Avoid training 24 hours prior",
            "Stay hydrated but avoid sports drinks",
            "Note recent competition or intense training",
        ),
    ),
    _product(
        id="prod-longevity",
        name="Longevity & Wellness Panel",
        description=(
            "Advanced biomarker analysis for healthy aging including inflammatory "
            "markers, oxidative stress, cellular health, and longevity indicators."
        ),
        price="99.00",
        category="longevity",
        tags=("longevity", "anti-aging", "wellness", "prevention"),
        image="longevity-panel.jpg",
        image_alt="Longevity & Wellness Panel",
        stock_level=55,
        test_type="Longevity Panel",
        turnaround_time="5-7 business days",
        fasting_required=True,
        preparation_instructions=(
            "Fast for 12 hours before test",
            "Avoid antioxidant supplements 48 hours prior",
            "Maintain consistent sleep schedule",
            "Avoid alcohol 48 hours before test",
        ),
    ),
)


class EcommerceFallback(FallbackService):
    """In-memory stand-in for the commerce engine."""

    service = Service.ECOMMERCE
    display_name = "E-commerce"
    default_latency_seconds = 0.15
    capabilities = [
        "Browse demo product catalog",
        "Add items to cart",
        "View pricing and details",
        "Test checkout flow (simulation)",
    ]
    limitations = [
        "No real payment processing",
        "Orders are not fulfilled",
        "No inventory updates",
        "Email confirmations disabled",
    ]

    def __init__(self, deployment_config, latency_seconds: Optional[float] = None):
        super().__init__(deployment_config, latency_seconds)
        self.products = DEMO_PRODUCTS
        self.cart: Optional[Cart] = None
        self.orders: List[Order] = []

    # ── Catalog ───────────────────────────────────────────────────────────

    async def get_products(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Product]:
        await self._enter("get_products")

        products = list(self.products)

        if category:
            products = [p for p in products if p.category == category]

        if search:
            products = [p for p in products if p.matches(search)]

        if sort == SORT_PRICE_ASC:
            products.sort(key=lambda p: p.price)
        elif sort == SORT_PRICE_DESC:
            products.sort(key=lambda p: p.price, reverse=True)
        elif sort == SORT_NAME:
            products.sort(key=lambda p: p.name.lower())

        if limit and limit > 0:
            products = products[:limit]

        return products

    async def get_product(self, product_id: str) -> Optional[Product]:
        await self._enter("get_product")
        return self._find_product(product_id)

    async def get_products_by_category(self, category: str) -> List[Product]:
        return await self.get_products(category=category)

    # ── Cart ──────────────────────────────────────────────────────────────

    async def get_cart(self) -> Cart:
        """Return the live cart, creating an empty one on first access."""
        await self._enter("get_cart")
        return self._current_cart()

    async def add_to_cart(self, product_id: str, quantity: int = 1) -> Cart:
        """Add a product, merging into its existing line when present."""
        await self._enter("add_to_cart")

        if quantity < 1:
            raise ValueError("quantity must be at least 1")

        product = self._find_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        cart = self._current_cart()
        line = cart.find_product_line(product_id)
        if line is not None:
            line.quantity += quantity
        else:
            cart.items.append(CartItem(
                id=f"item-{uuid.uuid4().hex[:12]}",
                product_id=product_id,
                product=product,
                quantity=quantity,
                price=product.price,
            ))

        cart.recalculate()
        logger.debug(
            "Demo cart item added",
            extra={"cart_id": cart.id, "product_id": product_id, "quantity": quantity},
        )
        return cart

    async def update_cart_item(self, item_id: str, quantity: int) -> Cart:
        """Set a line's quantity. Zero or less removes the line; unknown lines are ignored."""
        await self._enter("update_cart_item")

        cart = self._current_cart()
        item = cart.find_item(item_id)
        if item is not None:
            if quantity <= 0:
                cart.items.remove(item)
            else:
                item.quantity = quantity

        cart.recalculate()
        return cart

    async def remove_from_cart(self, item_id: str) -> Cart:
        return await self.update_cart_item(item_id, 0)

    async def clear_cart(self) -> Cart:
        await self._enter("clear_cart")
        self.cart = self._new_cart()
        return self.cart

    # ── Orders ────────────────────────────────────────────────────────────

    async def checkout(self, payment_data: Optional[Dict[str, Any]] = None) -> Order:
        """
        Snapshot the cart into an immutable order, then clear the cart.

        Raises:
            EmptyCartError: the cart has no lines; no order is created.
        """
        await self._enter("checkout")

        cart = self._current_cart()
        if not cart.items:
            raise EmptyCartError(cart.id)

        cart.recalculate()
        order = Order(
            id=f"order-{uuid.uuid4().hex[:12]}",
            number=f"PHL-{int(time.time() * 1000) % 1_000_000:06d}",
            status=OrderStatus.PENDING,
            items=tuple(OrderItem.from_cart_item(item) for item in cart.items),
            subtotal=cart.subtotal,
            tax_total=cart.tax_total,
            shipping_total=Decimal("0.00"),
            grand_total=cart.grand_total,
            created_at=utc_now(),
        )

        self.orders.append(order)
        self.cart = self._new_cart()

        logger.info(
            "Demo order created",
            extra={"order_id": order.id, "grand_total": str(order.grand_total)},
        )
        return order

    async def get_orders(self) -> List[Order]:
        """Orders, most recent first."""
        await self._enter("get_orders")
        return list(reversed(self.orders))

    async def get_order(self, order_id: str) -> Optional[Order]:
        await self._enter("get_order")
        return next((o for o in self.orders if o.id == order_id), None)

    # ── Status ────────────────────────────────────────────────────────────

    def get_fallback_status(self) -> Dict[str, Any]:
        status = super().get_fallback_status()
        prices = [p.price for p in self.products]
        status["demo_mode"] = {
            "product_count": len(self.products),
            "categories": sorted({p.category for p in self.products}),
            "price_range": {"min": str(min(prices)), "max": str(max(prices))},
        }
        return status

    # ── Internal helpers ──────────────────────────────────────────────────

    def _find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def _current_cart(self) -> Cart:
        if self.cart is None:
            self.cart = self._new_cart()
        return self.cart

    @staticmethod
    def _new_cart() -> Cart:
        now = utc_now()
        return Cart(id=f"cart-{uuid.uuid4().hex[:12]}", created_at=now, updated_at=now)
