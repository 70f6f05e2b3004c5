"""Server-side verification of gateway payment callbacks."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from src.api.middleware.error_handler import (
    CheckoutStateError,
    GatewayNotConfiguredError,
    InvalidSignatureError,
    NotFoundError,
    PaymentMismatchError,
)
from src.core.config import get_settings
from src.core.signature import verify_payment_signature
from src.models.order import OrderStatus, PaymentState
from src.models.payment import PaymentStatus
from src.services.order_service import OrderService, order_record_from_notes
from src.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedPayment:
    """A gateway callback whose signature has been checked.

    Only ``PaymentVerificationService`` creates these.
    """

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str


@dataclass
class VerificationResult:
    """Outcome of a successful verification."""

    order_id: int | None
    already_verified: bool = False
    reconstructed: bool = False


def _as_order_id(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class PaymentVerificationService:
    """The only path that marks payments paid and orders confirmed.

    Order of writes: the payment is marked paid (and linked) before the order
    is confirmed, so a confirmed order always has a paid payment.
    """

    def __init__(
        self,
        payment_service: PaymentService | None = None,
        order_service: OrderService | None = None,
    ) -> None:
        """Initialize verification service.

        Args:
            payment_service: Optional payment store.
            order_service: Optional order store.
        """
        self.settings = get_settings()
        self.payment_service = payment_service or PaymentService()
        self.order_service = order_service or OrderService()

    def verify_signature(
        self,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        razorpay_signature: str,
    ) -> VerifiedPayment:
        """Check a callback signature.

        Raises:
            GatewayNotConfiguredError: If the key secret is missing.
            InvalidSignatureError: If the signature does not match.
        """
        if not self.settings.razorpay_key_secret:
            raise GatewayNotConfiguredError()

        if not verify_payment_signature(
            razorpay_order_id,
            razorpay_payment_id,
            razorpay_signature,
            self.settings.razorpay_key_secret,
        ):
            logger.warning("Invalid signature for gateway order %s", razorpay_order_id)
            raise InvalidSignatureError()

        return VerifiedPayment(
            razorpay_order_id=razorpay_order_id,
            razorpay_payment_id=razorpay_payment_id,
            razorpay_signature=razorpay_signature,
        )

    async def verify_payment(
        self,
        user_email: str,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        razorpay_signature: str,
        order_id: int | None = None,
    ) -> VerificationResult:
        """Verify a callback and record its effects.

        Args:
            user_email: Authenticated caller.
            razorpay_order_id: Gateway order id from the callback.
            razorpay_payment_id: Gateway payment id from the callback.
            razorpay_signature: Signature from the callback.
            order_id: Order the caller says this payment is for.

        Returns:
            VerificationResult: The confirmed order.

        Raises:
            InvalidSignatureError: Signature mismatch. Nothing is written.
            NotFoundError: No payment (or linked order) owned by the caller.
            PaymentMismatchError: Payment and order disagree.
            StoreUnavailableError: A store call failed. Safe to retry.
        """
        verified = self.verify_signature(razorpay_order_id, razorpay_payment_id, razorpay_signature)

        payment = await self.payment_service.find_payment_by_gateway_order_id(razorpay_order_id, user_email)
        if not payment:
            raise NotFoundError("Payment not found")

        notes = payment.get("notes") or {}
        linked_order_id = self._resolve_order_id(payment, notes, order_id)
        already_paid = payment.get("status") == PaymentStatus.PAID.value

        if linked_order_id is not None:
            return await self._confirm_linked_order(verified, payment, user_email, linked_order_id, already_paid)

        return await self._reconstruct_order(verified, payment, user_email, notes, already_paid)

    def _resolve_order_id(self, payment: dict[str, Any], notes: dict[str, Any], requested: int | None) -> int | None:
        candidates = {
            "request": requested,
            "notes": _as_order_id(notes.get("order_id")),
            "payment": _as_order_id(payment.get("order_id")),
        }
        known = {value for value in candidates.values() if value is not None}
        if len(known) > 1:
            logger.warning(
                "Order id mismatch for gateway order %s: %s",
                payment.get("razorpay_order_id"),
                candidates,
            )
            raise PaymentMismatchError("Payment belongs to a different order")
        return known.pop() if known else None

    async def _confirm_linked_order(
        self,
        verified: VerifiedPayment,
        payment: dict[str, Any],
        user_email: str,
        order_id: int,
        already_paid: bool,
    ) -> VerificationResult:
        order = await self.order_service.get_order(order_id, user_email)
        if not order:
            raise NotFoundError("Order not found")

        if Decimal(str(order["total_amount"])) != Decimal(str(payment["amount"])):
            logger.warning(
                "Amount mismatch for order %s: order %s, payment %s",
                order_id,
                order["total_amount"],
                payment["amount"],
            )
            raise PaymentMismatchError("Payment amount does not match the order total")

        if self._is_confirmed(order):
            if not already_paid:
                # Order confirmed by an earlier payment on the same order.
                logger.error(
                    "Order %s already confirmed; payment %s needs manual reconciliation",
                    order_id,
                    verified.razorpay_payment_id,
                )
                raise PaymentMismatchError("Order is already paid")
            return VerificationResult(order_id=order_id, already_verified=True)

        if not already_paid:
            await self.payment_service.mark_payment_paid(verified, user_email, order_id=order_id)

        try:
            current = OrderStatus.from_db(order["status"])
        except ValueError:
            current = None
        if current is not OrderStatus.PENDING:
            logger.error(
                "Paid payment %s for order %s in status '%s'; needs manual reconciliation",
                verified.razorpay_payment_id,
                order_id,
                order["status"],
            )
            raise PaymentMismatchError("Order is no longer awaiting payment")

        rows = await self.order_service.update_order_status(
            order_id, user_email, OrderStatus.CONFIRMED, payment=PaymentState.PAID
        )
        if rows == 0:
            refreshed = await self.order_service.get_order(order_id, user_email)
            if not refreshed or not self._is_confirmed(refreshed):
                raise CheckoutStateError("Order changed while confirming payment. Please retry.")

        logger.info("Order %s confirmed by payment %s", order_id, verified.razorpay_payment_id)
        return VerificationResult(order_id=order_id, already_verified=already_paid)

    async def _reconstruct_order(
        self,
        verified: VerifiedPayment,
        payment: dict[str, Any],
        user_email: str,
        notes: dict[str, Any],
        already_paid: bool,
    ) -> VerificationResult:
        existing = await self.order_service.find_order_by_gateway_order_id(verified.razorpay_order_id, user_email)
        if existing:
            if not already_paid:
                await self.payment_service.mark_payment_paid(verified, user_email, order_id=existing["id"])
            elif _as_order_id(payment.get("order_id")) != existing["id"]:
                # Rebuilt on an earlier callback whose link step failed.
                await self.payment_service.link_order(verified.razorpay_order_id, user_email, existing["id"])
            return VerificationResult(order_id=existing["id"], already_verified=True)

        record = order_record_from_notes(user_email, notes, verified.razorpay_order_id)
        if record is None:
            if not already_paid:
                await self.payment_service.mark_payment_paid(verified, user_email)
            logger.error("Paid gateway order %s has no order snapshot to rebuild from", verified.razorpay_order_id)
            raise PaymentMismatchError("Payment has no order details")

        if Decimal(record["total_amount"]) != Decimal(str(payment["amount"])):
            logger.warning(
                "Amount mismatch rebuilding gateway order %s: snapshot %s, payment %s",
                verified.razorpay_order_id,
                record["total_amount"],
                payment["amount"],
            )
            raise PaymentMismatchError("Payment amount does not match the order total")

        if not already_paid:
            await self.payment_service.mark_payment_paid(verified, user_email)

        created = await self.order_service.insert_order_if_absent(record)
        if created is None:
            created = await self.order_service.find_order_by_gateway_order_id(verified.razorpay_order_id, user_email)
            if not created:
                raise CheckoutStateError("Order could not be recorded. Please retry.")

        await self.payment_service.link_order(verified.razorpay_order_id, user_email, created["id"])
        return VerificationResult(order_id=created["id"], already_verified=already_paid, reconstructed=True)

    @staticmethod
    def _is_confirmed(order: dict[str, Any]) -> bool:
        return (
            (order.get("status") or "").strip().lower() == OrderStatus.CONFIRMED.value
            and PaymentState.from_db(order.get("payment")) is PaymentState.PAID
        )
