"""Checkout Pydantic schemas for API request/response models."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.schemas.order import OrderResponse


class BusinessDetails(BaseModel):
    """First checkout step: who is buying."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    first_name: str = Field(min_length=1, max_length=100, description="Contact first name")
    last_name: str = Field(min_length=1, max_length=100, description="Contact last name")
    company_name: str = Field(min_length=1, max_length=255, description="Company name")
    email: str = Field(min_length=3, max_length=255, description="Business email")
    phone: str = Field(min_length=5, max_length=32, description="Phone number (WhatsApp preferred)")
    iec_tax_id: str | None = Field(default=None, max_length=64, description="Import Export Code or tax id")

    @field_validator("email")
    @classmethod
    def email_has_at_sign(cls, value: str) -> str:
        if "@" not in value:
            raise ValueError("Business email must be a valid email address")
        return value

    @field_validator("phone")
    @classmethod
    def phone_has_digits(cls, value: str) -> str:
        if not any(ch.isdigit() for ch in value):
            raise ValueError("Phone number must contain digits")
        return value

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class ShippingDetails(BaseModel):
    """Second checkout step: where and how to ship."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    shipping_address: str = Field(min_length=1, max_length=500, description="Street address, port, etc.")
    city: str = Field(min_length=1, max_length=100, description="Destination city or port")
    country: str = Field(min_length=2, max_length=100, description="Destination country")
    incoterms: str = Field(min_length=2, max_length=16, description="Preferred incoterms (FOB, CIF, EXW, ...)")
    special_instructions: str | None = Field(default=None, max_length=1000, description="Packaging or delivery notes")

    @field_validator("incoterms")
    @classmethod
    def normalize_incoterms(cls, value: str) -> str:
        return value.upper()


class CheckoutOrderCreate(BaseModel):
    """Schema for POST /checkout/orders."""

    model_config = ConfigDict(from_attributes=True)

    business: BusinessDetails = Field(description="Business details")
    shipping: ShippingDetails = Field(description="Shipping details")


class CheckoutOrderResponse(BaseModel):
    """Pending order created by checkout."""

    model_config = ConfigDict(from_attributes=True)

    state: str = Field(description="Checkout state")
    order: OrderResponse = Field(description="The pending order")
    shipping_cost: Decimal = Field(description="Shipping cost included in the total")


class GatewayOrderSchema(BaseModel):
    """Razorpay order as returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Gateway order id")
    amount: int = Field(description="Amount in minor currency units")
    currency: str = Field(description="Currency code")
    receipt: str | None = Field(default=None, description="Merchant receipt reference")
    status: str = Field(description="Gateway order status")


class PaymentSessionResponse(BaseModel):
    """Everything a client needs to open the hosted checkout."""

    model_config = ConfigDict(from_attributes=True)

    state: str = Field(description="Checkout state")
    order_id: int = Field(description="Order being paid")
    gateway_order: GatewayOrderSchema = Field(description="Gateway order")
    key_id: str = Field(description="Razorpay key id for the checkout UI")
    checkout_options: dict[str, Any] = Field(description="Options for the hosted checkout UI")
    is_test_mode: bool = Field(default=False, description="Whether Razorpay test keys are in use")


class PaymentCallback(BaseModel):
    """Completion callback relayed from the hosted checkout UI. Untrusted."""

    model_config = ConfigDict(from_attributes=True, str_strip_whitespace=True)

    razorpay_order_id: str = Field(min_length=1, description="Gateway order id")
    razorpay_payment_id: str = Field(min_length=1, description="Gateway payment id")
    razorpay_signature: str = Field(min_length=1, description="Gateway signature")


class CheckoutStepResponse(BaseModel):
    """Result of a checkout step that does not create records."""

    model_config = ConfigDict(from_attributes=True)

    state: str = Field(description="Checkout state")
    order_id: int = Field(description="Order identifier")
    message: str = Field(description="Message for the user")


class CheckoutCompleteResponse(BaseModel):
    """Result of a verified payment."""

    model_config = ConfigDict(from_attributes=True)

    success: bool = Field(description="Whether the order is confirmed")
    state: str = Field(description="Checkout state")
    order_id: int | None = Field(default=None, description="Confirmed order identifier")
    redirect_url: str | None = Field(default=None, description="Order summary location")
    error: str | None = Field(default=None, description="User-facing error")
