"""Payment gateway order creation and checkout options."""

import logging
import re
import time
from decimal import Decimal
from typing import Any

from src.api.middleware.error_handler import (
    GatewayError,
    GatewayNotConfiguredError,
    ValidationError,
)
from src.core.config import get_settings
from src.core.razorpay import (
    RazorpayClient,
    RazorpayError,
    compact_gateway_notes,
    get_razorpay_client,
    to_minor_units,
)
from src.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
MAX_RECEIPT_LENGTH = 40


class PaymentGatewayService:
    """Creates Razorpay orders and records them as ``created`` payments."""

    def __init__(
        self,
        razorpay: RazorpayClient | None = None,
        payment_service: PaymentService | None = None,
    ) -> None:
        """Initialize gateway service.

        Args:
            razorpay: Optional Razorpay client (defaults to one built from settings).
            payment_service: Optional payment store.
        """
        self.settings = get_settings()
        self.razorpay = razorpay or get_razorpay_client()
        self.payment_service = payment_service or PaymentService()

    async def create_gateway_order(
        self,
        amount: Decimal,
        currency: str,
        receipt: str | None,
        user_email: str,
        notes: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a gateway order and persist its payment record.

        Args:
            amount: Amount in major currency units.
            currency: ISO currency code.
            receipt: Merchant receipt reference (generated if omitted).
            user_email: Owner of the payment.
            notes: Checkout snapshot stored with the payment.

        Returns:
            dict: ``id``, ``amount`` (minor units), ``currency``, ``receipt``
            and ``status`` of the gateway order.

        Raises:
            ValidationError: If the amount or currency is invalid.
            GatewayNotConfiguredError: If Razorpay credentials are missing.
            GatewayError: If Razorpay rejects or cannot be reached.
            StoreUnavailableError: If the payment record cannot be saved.
        """
        if amount is None or amount <= 0:
            raise ValidationError("Valid amount is required")
        amount_minor = to_minor_units(amount)
        if amount_minor < 1:
            raise ValidationError("Valid amount is required")

        currency = (currency or "").strip().upper()
        if not CURRENCY_PATTERN.match(currency):
            raise ValidationError(f"Invalid currency '{currency}'")

        if not self.razorpay.is_configured:
            raise GatewayNotConfiguredError()

        receipt = (receipt or f"receipt_{int(time.time() * 1000)}")[:MAX_RECEIPT_LENGTH]

        try:
            gateway_order = await self.razorpay.create_order(
                amount_minor=amount_minor,
                currency=currency,
                receipt=receipt,
                notes=compact_gateway_notes(notes),
            )
        except RazorpayError as e:
            raise GatewayError(f"Razorpay order creation failed: {e.message}") from e

        try:
            await self.payment_service.create_payment(
                user_email=user_email,
                razorpay_order_id=gateway_order["id"],
                amount=amount,
                currency=currency,
                notes=notes,
            )
        except Exception:
            logger.error("Gateway order %s created but its payment record was not saved", gateway_order["id"])
            raise

        return {
            "id": gateway_order["id"],
            "amount": gateway_order.get("amount", amount_minor),
            "currency": gateway_order.get("currency", currency),
            "receipt": gateway_order.get("receipt", receipt),
            "status": gateway_order.get("status", "created"),
        }

    def build_checkout_options(self, gateway_order: dict[str, Any], key_id: str, user_email: str) -> dict[str, Any]:
        """Build the options the hosted checkout UI is opened with.

        Args:
            gateway_order: Result of ``create_gateway_order``.
            key_id: Razorpay key id.
            user_email: Prefilled email.

        Returns:
            dict: Checkout UI options.
        """
        return {
            "key": key_id,
            "amount": gateway_order["amount"],
            "currency": gateway_order["currency"],
            "name": self.settings.razorpay_checkout_name,
            "description": self.settings.razorpay_checkout_description,
            "order_id": gateway_order["id"],
            "prefill": {"email": user_email},
            "theme": {"color": self.settings.razorpay_theme_color},
        }
