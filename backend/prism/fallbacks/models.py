"""
In-memory entities used by the fallback services.

Money is Decimal throughout. Cart totals are derived values: Cart.recalculate()
rebuilds every total from the item list and is the only way totals change.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

TAX_RATE = Decimal("0.08")
CENTS = Decimal("0.01")
CURRENCY = "USD"


def to_money(value: Any) -> Decimal:
    """Quantize a numeric value to cents."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Patient data
# =============================================================================

class TestResultStatus(str, Enum):
    __test__ = False

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class Profile:
    id: str
    email: str
    full_name: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "full_name": self.full_name,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class TestResult:
    """A lab test order and, once completed, its results."""
    __test__ = False

    id: str
    user_id: str
    test_name: str
    test_category: str
    status: TestResultStatus
    results: Optional[Dict[str, Any]]
    ordered_at: datetime
    completed_at: Optional[datetime]
    price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "test_name": self.test_name,
            "test_category": self.test_category,
            "status": self.status.value,
            "results": self.results,
            "ordered_at": self.ordered_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "price": str(self.price),
        }


@dataclass
class Appointment:
    id: str
    user_id: str
    location_id: str
    appointment_date: date
    appointment_time: str
    status: AppointmentStatus
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "location_id": self.location_id,
            "appointment_date": self.appointment_date.isoformat(),
            "appointment_time": self.appointment_time,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }


# =============================================================================
# Commerce
# =============================================================================

class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    BACKORDER = "backorder"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProductDetails:
    test_type: str
    sample_type: str
    turnaround_time: str
    fasting_required: bool
    preparation_instructions: Tuple[str, ...]


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: Decimal
    category: str
    tags: Tuple[str, ...]
    image_url: str
    image_alt: str
    stock_status: StockStatus
    stock_level: Optional[int]
    details: ProductDetails
    currency: str = CURRENCY

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on name, description or any tag."""
        term = term.lower()
        return (
            term in self.name.lower()
            or term in self.description.lower()
            or any(term in tag.lower() for tag in self.tags)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "currency": self.currency,
            "category": self.category,
            "tags": list(self.tags),
            "images": [{"file": {"url": self.image_url, "alt": self.image_alt}}],
            "stock_status": self.stock_status.value,
            "stock_level": self.stock_level,
            "metadata": {
                "test_type": self.details.test_type,
                "sample_type": self.details.sample_type,
                "turnaround_time": self.details.turnaround_time,
                "fasting_required": self.details.fasting_required,
                "preparation_instructions": list(self.details.preparation_instructions),
            },
        }


@dataclass
class CartItem:
    id: str
    product_id: str
    product: Product
    quantity: int
    price: Decimal
    total: Decimal = Decimal("0.00")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name,
            "quantity": self.quantity,
            "price": str(self.price),
            "total": str(self.total),
        }


@dataclass
class Cart:
    id: str
    items: List[CartItem] = field(default_factory=list)
    item_count: int = 0
    subtotal: Decimal = Decimal("0.00")
    tax_total: Decimal = Decimal("0.00")
    grand_total: Decimal = Decimal("0.00")
    currency: str = CURRENCY
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def find_item(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.id == item_id), None)

    def find_product_line(self, product_id: str) -> Optional[CartItem]:
        return next((item for item in self.items if item.product_id == product_id), None)

    def recalculate(self) -> None:
        """Rebuild every derived total from the item list."""
        for item in self.items:
            item.total = to_money(item.price * item.quantity)

        self.item_count = sum(item.quantity for item in self.items)
        self.subtotal = to_money(sum((item.total for item in self.items), Decimal("0")))
        self.tax_total = to_money(self.subtotal * TAX_RATE)
        self.grand_total = self.subtotal + self.tax_total
        self.updated_at = utc_now()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "items": [item.to_dict() for item in self.items],
            "item_count": self.item_count,
            "subtotal": str(self.subtotal),
            "tax_total": str(self.tax_total),
            "grand_total": str(self.grand_total),
            "currency": self.currency,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    price: Decimal
    total: Decimal

    @classmethod
    def from_cart_item(cls, item: CartItem) -> "OrderItem":
        return cls(
            product_id=item.product_id,
            product_name=item.product.name,
            quantity=item.quantity,
            price=item.price,
            total=item.total,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": str(self.price),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class Order:
    """Immutable snapshot of a cart at checkout."""
    id: str
    number: str
    status: OrderStatus
    items: Tuple[OrderItem, ...]
    subtotal: Decimal
    tax_total: Decimal
    shipping_total: Decimal
    grand_total: Decimal
    created_at: datetime
    currency: str = CURRENCY

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "status": self.status.value,
            "items": [item.to_dict() for item in self.items],
            "item_count": self.item_count,
            "subtotal": str(self.subtotal),
            "tax_total": str(self.tax_total),
            "shipping_total": str(self.shipping_total),
            "grand_total": str(self.grand_total),
            "currency": self.currency,
            "created_at": self.created_at.isoformat(),
        }
