"""Checkout workflow: business details to confirmed order."""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any

from src.api.middleware.error_handler import (
    CONTACT_SUPPORT_MESSAGE,
    CheckoutStateError,
    InvalidSignatureError,
    NotFoundError,
    PaymentMismatchError,
    StoreUnavailableError,
    ValidationError,
)
from src.core.config import get_settings
from src.models.order import OrderStatus, PaymentState
from src.schemas.checkout import BusinessDetails, PaymentCallback, ShippingDetails
from src.services.cart_service import CartService
from src.services.email_service import EmailService
from src.services.gateway_service import PaymentGatewayService
from src.services.order_service import (
    OrderService,
    build_order_record,
    order_notes_from_record,
)
from src.services.verification_service import PaymentVerificationService

logger = logging.getLogger(__name__)


class CheckoutState(str, Enum):
    """Where a checkout is in its lifecycle."""

    COLLECTING_BUSINESS_INFO = "collecting_business_info"
    COLLECTING_SHIPPING = "collecting_shipping"
    ORDER_CREATED = "order_created"
    PAYMENT_SUCCEEDED = "payment_succeeded"
    CONFIRMED = "confirmed"
    FAILED = "failed"


TERMINAL_STATES = frozenset({CheckoutState.CONFIRMED, CheckoutState.FAILED})

# Failures that mean the payment cannot be trusted for this order.
VERIFICATION_FAILURES = (InvalidSignatureError, PaymentMismatchError, NotFoundError)


class CheckoutOrchestrator:
    """State machine driving one user's checkout.

    The HTTP layer is stateless, so an orchestrator is either walked from
    the start (business details, then shipping) or rebuilt with
    ``resume`` from a stored order. Every transition is checked against the
    current state; a step requested out of order raises
    ``CheckoutStateError``.
    """

    def __init__(
        self,
        user_email: str,
        order_service: OrderService | None = None,
        cart_service: CartService | None = None,
        gateway_service: PaymentGatewayService | None = None,
        verification_service: PaymentVerificationService | None = None,
        email_service: EmailService | None = None,
    ) -> None:
        """Initialize the orchestrator for an authenticated user.

        Args:
            user_email: Authenticated user's email. Owns every record created.
            order_service: Optional order store.
            cart_service: Optional cart access.
            gateway_service: Optional gateway service.
            verification_service: Optional verification service.
            email_service: Optional email service.
        """
        self.settings = get_settings()
        self.user_email = user_email
        self.order_service = order_service or OrderService()
        self.cart_service = cart_service or CartService()
        self.gateway_service = gateway_service or PaymentGatewayService()
        self.verification_service = verification_service or PaymentVerificationService(
            order_service=self.order_service
        )
        self.email_service = email_service or EmailService()

        self.state = CheckoutState.COLLECTING_BUSINESS_INFO
        self.business: BusinessDetails | None = None
        self.order: dict[str, Any] | None = None
        self.callback: PaymentCallback | None = None
        self.error: str | None = None

    @property
    def order_id(self) -> int | None:
        return self.order["id"] if self.order else None

    def _require(self, *states: CheckoutState) -> None:
        if self.state not in states:
            expected = ", ".join(s.value for s in states)
            raise CheckoutStateError(f"Checkout is in state '{self.state.value}', expected {expected}")

    def _transition(self, target: CheckoutState) -> None:
        logger.debug("Checkout for %s: %s -> %s", self.user_email, self.state.value, target.value)
        self.state = target

    def resume(self, order: dict[str, Any]) -> CheckoutState:
        """Rebuild the state for an existing order.

        Args:
            order: An ``orders`` row owned by this user.

        Returns:
            CheckoutState: The resumed state.

        Raises:
            CheckoutStateError: If the order is neither awaiting payment nor confirmed.
        """
        try:
            status = OrderStatus.from_db(order.get("status"))
        except ValueError as e:
            raise CheckoutStateError(f"Order {order.get('id')} is '{order.get('status')}' and cannot be paid") from e
        payment = PaymentState.from_db(order.get("payment"))

        if status is OrderStatus.PENDING and payment is PaymentState.UNPAID:
            target = CheckoutState.ORDER_CREATED
        elif status is OrderStatus.CONFIRMED and payment is PaymentState.PAID:
            target = CheckoutState.CONFIRMED
        else:
            raise CheckoutStateError(f"Order {order.get('id')} is '{status.value}' and cannot be paid")

        self.order = order
        self.state = target
        return target

    def submit_business_info(self, details: BusinessDetails) -> CheckoutState:
        """Record business details."""
        self._require(CheckoutState.COLLECTING_BUSINESS_INFO)
        self.business = details
        self._transition(CheckoutState.COLLECTING_SHIPPING)
        return self.state

    async def submit_shipping(self, details: ShippingDetails) -> dict[str, Any]:
        """Create the pending order from the cart.

        Args:
            details: Shipping details.

        Returns:
            dict: The pending order row.

        Raises:
            ValidationError: If the cart is empty or a cart item is unavailable.
            StoreUnavailableError: If the order could not be saved. The
                checkout stays in ``collecting_shipping``.
        """
        self._require(CheckoutState.COLLECTING_SHIPPING)
        business = self.business

        items = await self.cart_service.get_cart_items(self.user_email)
        if not items:
            raise ValidationError("Your cart is empty")

        shipping_cost = self.settings.estimated_shipping_cost
        record = build_order_record(
            email=self.user_email,
            customer={
                "name": business.full_name,
                "company": business.company_name,
                "phone": business.phone,
                "import_export_code": business.iec_tax_id,
            },
            shipping={
                "shipping_address": details.shipping_address,
                "city": details.city,
                "country": details.country,
                "incoterms": details.incoterms,
                "instructions": details.special_instructions,
            },
            items=[item.to_line_item() for item in items],
            shipping_cost=shipping_cost,
            status=OrderStatus.PENDING,
            payment=PaymentState.UNPAID,
        )

        order_id = await self.order_service.create_order(record)
        self.order = {**record, "id": order_id}
        self._transition(CheckoutState.ORDER_CREATED)
        return self.order

    async def start_payment(self) -> dict[str, Any]:
        """Create a gateway order for the pending order.

        May be called again after the user dismissed the payment UI.

        Returns:
            dict: ``gateway_order``, ``key_id``, ``checkout_options`` and
            ``is_test_mode``.
        """
        self._require(CheckoutState.ORDER_CREATED)
        order = self.order

        gateway_order = await self.gateway_service.create_gateway_order(
            amount=Decimal(str(order["total_amount"])),
            currency=self.settings.default_currency,
            receipt=f"order_{order['id']}",
            user_email=self.user_email,
            notes=order_notes_from_record(order, self.user_email),
        )
        key_id = self.settings.razorpay_key_id

        logger.info("Payment started for order %s (gateway order %s)", order["id"], gateway_order["id"])
        return {
            "gateway_order": gateway_order,
            "key_id": key_id,
            "checkout_options": self.gateway_service.build_checkout_options(gateway_order, key_id, self.user_email),
            "is_test_mode": self.settings.is_razorpay_test_mode,
        }

    def payment_dismissed(self) -> CheckoutState:
        """The user closed the payment UI. The order stays pending."""
        self._require(CheckoutState.ORDER_CREATED)
        logger.info("Payment dismissed for order %s", self.order_id)
        return self.state

    def record_payment_callback(self, callback: PaymentCallback) -> CheckoutState:
        """Accept the completion callback. Nothing is written until ``confirm``."""
        self._require(CheckoutState.ORDER_CREATED)
        self.callback = callback
        self._transition(CheckoutState.PAYMENT_SUCCEEDED)
        return self.state

    async def confirm(self) -> dict[str, Any]:
        """Verify the recorded callback and confirm the order.

        Returns:
            dict: ``success``, ``state``, and either ``order_id`` with
            ``redirect_url`` or the support ``error`` message.

        Raises:
            StoreUnavailableError: If a store call failed. The checkout stays
                in ``payment_succeeded`` and may be confirmed again.
        """
        self._require(CheckoutState.PAYMENT_SUCCEEDED)
        callback = self.callback

        try:
            result = await self.verification_service.verify_payment(
                user_email=self.user_email,
                razorpay_order_id=callback.razorpay_order_id,
                razorpay_payment_id=callback.razorpay_payment_id,
                razorpay_signature=callback.razorpay_signature,
                order_id=self.order_id,
            )
        except VERIFICATION_FAILURES as e:
            logger.warning("Payment verification failed for order %s: %s", self.order_id, e.message)
            self.fail(CONTACT_SUPPORT_MESSAGE)
            return self._result()

        self.order = {**self.order, "status": OrderStatus.CONFIRMED.value, "payment": PaymentState.PAID.value}
        self._transition(CheckoutState.CONFIRMED)

        if not result.already_verified:
            await self._after_confirmation()
        return self._result()

    async def complete_payment(self, callback: PaymentCallback) -> dict[str, Any]:
        """Record a callback and confirm in one step.

        A callback for an order that is already confirmed returns the same
        successful result without further writes.
        """
        if self.state is CheckoutState.CONFIRMED:
            return self._result()
        self.record_payment_callback(callback)
        return await self.confirm()

    def fail(self, reason: str) -> CheckoutState:
        """Move a non-terminal checkout to ``failed``."""
        if self.state in TERMINAL_STATES:
            raise CheckoutStateError(f"Checkout already {self.state.value}")
        self.error = reason
        self._transition(CheckoutState.FAILED)
        return self.state

    async def _after_confirmation(self) -> None:
        try:
            await self.cart_service.clear_cart(self.user_email)
        except StoreUnavailableError:
            logger.warning("Order %s confirmed but the cart could not be cleared", self.order_id)

        try:
            order = await self.order_service.get_order(self.order_id, self.user_email)
        except StoreUnavailableError:
            order = None
        await self.email_service.send_order_confirmation_email(self.user_email, order or self.order)

    def _result(self) -> dict[str, Any]:
        if self.state is CheckoutState.CONFIRMED:
            return {
                "success": True,
                "state": self.state.value,
                "order_id": self.order_id,
                "redirect_url": f"/orders/{self.order_id}",
            }
        return {
            "success": False,
            "state": self.state.value,
            "order_id": self.order_id,
            "error": self.error,
        }
