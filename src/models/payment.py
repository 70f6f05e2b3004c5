"""Payment model type definitions for database operations."""

from datetime import datetime
from enum import Enum
from typing import Any, TypedDict


class PaymentStatus(str, Enum):
    """Lifecycle of a gateway payment record."""

    CREATED = "created"
    PAID = "paid"


PAYMENT_STATUS_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.CREATED: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset(),
}


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    """Check whether a payment may move from ``current`` to ``target``."""
    return target in PAYMENT_STATUS_TRANSITIONS[current]


def payment_sources(target: PaymentStatus) -> list[str]:
    """Stored status values a payment may move to ``target`` from."""
    return [status.value for status in PaymentStatus if can_transition_payment(status, target)]


class Payment(TypedDict):
    """Payments table row representation.

    One row per Razorpay order id.
    """

    id: int
    created_at: datetime
    updated_at: datetime | None
    order_id: int | None
    user_email: str
    razorpay_order_id: str
    razorpay_payment_id: str | None
    razorpay_signature: str | None
    amount: str
    currency: str
    status: str
    notes: dict[str, Any]


class PaymentCreate(TypedDict):
    """Data required to create a payment record."""

    user_email: str
    razorpay_order_id: str
    amount: str
    currency: str
    status: str
    notes: dict[str, Any]


class PaymentUpdate(TypedDict, total=False):
    """Fields that may be changed on a payment without a verified signature."""

    order_id: int | None
    notes: dict[str, Any]
