"""Order Pydantic schemas for API request/response models."""

import json
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.order import PaymentState
from src.models.payment import PaymentStatus

logger = logging.getLogger(__name__)


class OrderLineItemSchema(BaseModel):
    """Schema for a single line item in an order."""

    model_config = ConfigDict(from_attributes=True)

    product_id: str = Field(description="Product identifier")
    name: str = Field(description="Product name")
    price: Decimal = Field(ge=0, description="Unit price in major currency units")
    unit: str = Field(default="MT", description="Unit of sale")
    quantity: int = Field(ge=1, description="Quantity ordered")


class PaymentSummary(BaseModel):
    """Payment attached to an order."""

    model_config = ConfigDict(from_attributes=True)

    razorpay_order_id: str = Field(description="Gateway order id")
    razorpay_payment_id: str | None = Field(default=None, description="Gateway payment id once paid")
    amount: Decimal = Field(description="Amount in major currency units")
    currency: str = Field(description="Currency code")
    status: str = Field(description="Payment status")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")


class OrderResponse(BaseModel):
    """Schema for order API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Order identifier")
    name: str | None = Field(default=None, description="Customer name")
    email: str = Field(description="Owner email")
    company: str | None = Field(default=None, description="Company name")
    items: list[OrderLineItemSchema] = Field(default_factory=list, description="Order line items")
    number: int | None = Field(default=None, description="Phone number")
    import_export_code: str | None = Field(default=None, description="Import/export code or tax id")
    shipping_address: str | None = Field(default=None, description="Full shipping address")
    port: str | None = Field(default=None, description="Destination city or port")
    country: str | None = Field(default=None, description="Destination country")
    status: str = Field(description="Order status")
    status_text: str = Field(description="Display status combining order and payment state")
    incoterms: str | None = Field(default=None, description="Incoterms")
    instructions: str | None = Field(default=None, description="Special instructions")
    total_amount: Decimal = Field(description="Order total in major currency units")
    payment: str = Field(description="Order payment state")
    payments: list[PaymentSummary] = Field(default_factory=list, description="Gateway payments for this order")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")

    @classmethod
    def from_record(cls, order: dict[str, Any], payments: list[dict[str, Any]] | None = None) -> "OrderResponse":
        """Build a response from an ``orders`` row and its payments."""
        payments = payments or []
        payment_state = PaymentState.from_db(order.get("payment"))
        return cls(
            id=order["id"],
            name=order.get("name"),
            email=order["email"],
            company=order.get("company"),
            items=parse_line_items(order.get("products")),
            number=order.get("number"),
            import_export_code=order.get("import_export_code"),
            shipping_address=order.get("shipping_address"),
            port=order.get("port"),
            country=order.get("country"),
            status=order.get("status") or "",
            status_text=order_status_text(order, payments),
            incoterms=order.get("incoterms"),
            instructions=order.get("instructions"),
            total_amount=Decimal(str(order.get("total_amount") or 0)),
            payment=payment_state.value,
            payments=[PaymentSummary(**p) for p in payments],
            created_at=order.get("created_at"),
        )


class OrderListResponse(BaseModel):
    """Schema for order list API responses."""

    model_config = ConfigDict(from_attributes=True)

    items: list[OrderResponse] = Field(description="List of orders")


def parse_line_items(raw: Any) -> list[OrderLineItemSchema]:
    """Parse the stored ``products`` column into line items.

    Malformed rows are logged and rendered without items rather than
    failing the whole order listing.
    """
    if not raw:
        return []
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        return [OrderLineItemSchema(**item) for item in data]
    except (ValueError, TypeError) as e:
        logger.warning("Could not parse order products: %s", str(e))
        return []


def order_status_text(order: dict[str, Any], payments: list[dict[str, Any]]) -> str:
    """Status shown to the customer."""
    status = (order.get("status") or "").strip()
    if PaymentState.from_db(order.get("payment")) is PaymentState.PAID:
        return status.title() if status else "Confirmed"

    if status.lower() == "cancelled":
        return "Cancelled"

    if not any(p.get("status") == PaymentStatus.PAID.value for p in payments):
        return "Payment Pending"

    return status.title() if status else "Processing"
