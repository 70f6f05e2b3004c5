"""Database model type definitions."""

from src.models.cart import CartRow, ProductRow
from src.models.order import Order, OrderCreate, OrderLineItem, OrderStatus, PaymentState
from src.models.payment import Payment, PaymentCreate, PaymentStatus, PaymentUpdate

__all__ = [
    "CartRow",
    "ProductRow",
    "Order",
    "OrderCreate",
    "OrderLineItem",
    "OrderStatus",
    "PaymentState",
    "Payment",
    "PaymentCreate",
    "PaymentStatus",
    "PaymentUpdate",
]
