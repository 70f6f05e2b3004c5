"""Order model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import TypedDict


class OrderStatus(str, Enum):
    """Fulfilment status of an order.

    Stored as free text in the ``orders.status`` column.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_TRANSIT = "in transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @classmethod
    def from_db(cls, value: str | None) -> "OrderStatus":
        """Parse a stored status, accepting legacy spellings.

        Raises:
            ValueError: If the value is not a known status.
        """
        normalized = (value or "").strip().lower()
        normalized = LEGACY_ORDER_STATUSES.get(normalized, normalized)
        return cls(normalized)


# Older rows written by the storefront UI
LEGACY_ORDER_STATUSES = {
    "processing": OrderStatus.CONFIRMED.value,
    "shipped": OrderStatus.IN_TRANSIT.value,
}

ORDER_STATUS_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.IN_TRANSIT, OrderStatus.CANCELLED}),
    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def can_transition_order(current: OrderStatus, target: OrderStatus) -> bool:
    """Check whether an order may move from ``current`` to ``target``."""
    return target in ORDER_STATUS_TRANSITIONS[current]


class PaymentState(str, Enum):
    """Value of the ``orders.payment`` column."""

    UNPAID = "unpaid"
    PAID = "paid"

    @classmethod
    def from_db(cls, value: str | None) -> "PaymentState":
        """Anything other than ``paid`` (including unset) is unpaid."""
        return cls.PAID if (value or "").strip().lower() == cls.PAID.value else cls.UNPAID


class OrderLineItem(TypedDict):
    """Structure for a single line item in an order.

    Stored as part of the JSON-serialised ``products`` column. Prices are
    decimal strings in major currency units.
    """

    product_id: str
    name: str
    price: str
    unit: str
    quantity: int


class Order(TypedDict):
    """Order table row representation."""

    id: int
    created_at: datetime
    name: str
    email: str
    company: str | None
    products: str
    number: int | None
    import_export_code: str | None
    shipping_address: str
    port: str
    country: str
    status: str
    incoterms: str | None
    instructions: str | None
    total_amount: str
    payment: str
    razorpay_order_id: str | None


class OrderCreate(TypedDict, total=False):
    """Data required to create a new order."""

    name: str
    email: str
    company: str | None
    products: str
    number: int | None
    import_export_code: str | None
    shipping_address: str
    port: str
    country: str
    status: str
    incoterms: str | None
    instructions: str | None
    total_amount: str
    payment: str
    razorpay_order_id: str | None
