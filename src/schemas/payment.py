"""Payment Pydantic schemas for the gateway endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.checkout import GatewayOrderSchema


class GatewayOrderCreate(BaseModel):
    """Schema for POST /payments/razorpay/orders.

    Amount is validated by the gateway service so that a non-positive value
    is rejected with the same error body as other failures.
    """

    model_config = ConfigDict(from_attributes=True)

    amount: Decimal = Field(description="Amount in major currency units")
    currency: str = Field(default="INR", description="Currency code")
    receipt: str | None = Field(default=None, max_length=40, description="Merchant receipt reference")
    notes: dict[str, Any] | None = Field(default=None, description="Order snapshot kept for recovery")


class GatewayOrderResponse(BaseModel):
    """Schema for gateway order creation responses."""

    model_config = ConfigDict(from_attributes=True)

    success: bool = Field(description="Whether the gateway order was created")
    order: GatewayOrderSchema | None = Field(default=None, description="Gateway order")
    key_id: str | None = Field(default=None, description="Razorpay key id")
    error: str | None = Field(default=None, description="Error message")


class PaymentVerifyRequest(BaseModel):
    """Schema for POST /payments/razorpay/verify.

    Fields are optional here so a missing field yields the endpoint's own
    400 response instead of a schema error.
    """

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    razorpay_order_id: str | None = Field(default=None, description="Gateway order id")
    razorpay_payment_id: str | None = Field(default=None, description="Gateway payment id")
    razorpay_signature: str | None = Field(default=None, description="Gateway signature")
    order_id: int | None = Field(default=None, description="Order this payment is for, if it already exists")


class PaymentVerifyResponse(BaseModel):
    """Schema for payment verification responses."""

    model_config = ConfigDict(from_attributes=True)

    success: bool = Field(description="Whether the payment was verified")
    message: str | None = Field(default=None, description="Status message")
    order_id: int | None = Field(default=None, description="Confirmed order identifier")
    error: str | None = Field(default=None, description="Error message")


class PaymentResponse(BaseModel):
    """Schema for a payment record."""

    model_config = ConfigDict(from_attributes=True)

    razorpay_order_id: str = Field(description="Gateway order id")
    razorpay_payment_id: str | None = Field(default=None, description="Gateway payment id")
    order_id: int | None = Field(default=None, description="Linked order")
    amount: Decimal = Field(description="Amount in major currency units")
    currency: str = Field(description="Currency code")
    status: str = Field(description="Payment status")
    created_at: datetime | None = Field(default=None, description="Creation timestamp")


class PaymentListResponse(BaseModel):
    """Schema for payment list responses."""

    model_config = ConfigDict(from_attributes=True)

    items: list[PaymentResponse] = Field(description="List of payments")
