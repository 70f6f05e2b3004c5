"""Payment record store business logic."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from src.api.middleware.error_handler import ValidationError
from src.core.supabase import get_supabase_client, store_call
from src.models.payment import PaymentCreate, PaymentStatus, PaymentUpdate, payment_sources

if TYPE_CHECKING:
    from src.services.verification_service import VerifiedPayment

logger = logging.getLogger(__name__)

PAYMENTS_TABLE = "payments"

# Columns a caller may change without a verified signature.
UPDATABLE_FIELDS = frozenset(PaymentUpdate.__annotations__)


class PaymentService:
    """Service for gateway payment records.

    One record per gateway order id, always scoped to ``user_email``. The
    ``created`` to ``paid`` transition is only reachable through
    ``mark_payment_paid`` with a verified payment.
    """

    def __init__(self) -> None:
        """Initialize payment service with Supabase client."""
        self.client = get_supabase_client()

    async def create_payment(
        self,
        user_email: str,
        razorpay_order_id: str,
        amount: Decimal,
        currency: str,
        notes: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Record a newly created gateway order.

        Args:
            user_email: Owner email.
            razorpay_order_id: Gateway order id.
            amount: Amount in major currency units.
            currency: Currency code.
            notes: Full checkout snapshot.

        Returns:
            dict: The created payment.
        """
        record: PaymentCreate = {
            "user_email": user_email,
            "razorpay_order_id": razorpay_order_id,
            "amount": str(amount),
            "currency": currency,
            "status": PaymentStatus.CREATED.value,
            "notes": notes or {},
        }

        with store_call("create payment"):
            response = self.client.table(PAYMENTS_TABLE).insert(record).execute()

        logger.info("Recorded payment for gateway order %s (%s %s)", razorpay_order_id, amount, currency)
        return response.data[0]

    async def find_payment_by_gateway_order_id(self, razorpay_order_id: str, user_email: str) -> dict[str, Any] | None:
        """Get the caller's payment for a gateway order.

        Returns:
            dict | None: The payment, or None if missing or owned by someone else.
        """
        with store_call("find payment"):
            response = (
                self.client.table(PAYMENTS_TABLE)
                .select("*")
                .eq("razorpay_order_id", razorpay_order_id)
                .eq("user_email", user_email)
                .maybe_single()
                .execute()
            )

        return response.data if response and response.data else None

    async def update_payment_by_gateway_order_id(
        self,
        razorpay_order_id: str,
        user_email: str,
        updates: PaymentUpdate,
    ) -> int:
        """Update non-status fields of a payment.

        Returns:
            int: Number of rows updated.

        Raises:
            ValidationError: If ``updates`` touches anything other than the
                order link or notes.
        """
        forbidden = set(updates) - UPDATABLE_FIELDS
        if forbidden:
            raise ValidationError(f"Payment fields cannot be updated: {', '.join(sorted(forbidden))}")

        with store_call("update payment"):
            response = (
                self.client.table(PAYMENTS_TABLE)
                .update({**updates, "updated_at": datetime.now(timezone.utc).isoformat()})
                .eq("razorpay_order_id", razorpay_order_id)
                .eq("user_email", user_email)
                .execute()
            )

        return len(response.data) if response.data else 0

    async def mark_payment_paid(
        self,
        verified: "VerifiedPayment",
        user_email: str,
        order_id: int | None = None,
    ) -> int:
        """Move a payment from created to paid.

        Only applies while the payment is still ``created``, so a duplicate
        callback cannot overwrite an earlier one.

        Args:
            verified: Signature-checked gateway callback.
            user_email: Owner email.
            order_id: Order this payment pays for, when known.

        Returns:
            int: Number of rows updated (0 if already paid or not owned).
        """
        update_data: dict[str, Any] = {
            "razorpay_payment_id": verified.razorpay_payment_id,
            "razorpay_signature": verified.razorpay_signature,
            "status": PaymentStatus.PAID.value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if order_id is not None:
            update_data["order_id"] = order_id

        with store_call("mark payment paid"):
            response = (
                self.client.table(PAYMENTS_TABLE)
                .update(update_data)
                .eq("razorpay_order_id", verified.razorpay_order_id)
                .eq("user_email", user_email)
                .in_("status", payment_sources(PaymentStatus.PAID))
                .execute()
            )

        rows = len(response.data) if response.data else 0
        if rows:
            logger.info("Payment %s for gateway order %s marked paid", verified.razorpay_payment_id, verified.razorpay_order_id)
        return rows

    async def link_order(self, razorpay_order_id: str, user_email: str, order_id: int) -> int:
        """Attach an order id to a payment."""
        return await self.update_payment_by_gateway_order_id(razorpay_order_id, user_email, {"order_id": order_id})

    async def get_payments_for_user(self, user_email: str) -> list[dict[str, Any]]:
        """Get a user's payments, newest first."""
        with store_call("list payments"):
            response = (
                self.client.table(PAYMENTS_TABLE)
                .select("*")
                .eq("user_email", user_email)
                .order("created_at", desc=True)
                .execute()
            )

        return response.data or []

    async def get_payments_for_orders(self, user_email: str, order_ids: list[int]) -> dict[int, list[dict[str, Any]]]:
        """Group a user's payments by order id.

        Args:
            user_email: Owner email.
            order_ids: Orders to look up.

        Returns:
            dict: Order id to its payments (orders without payments are absent).
        """
        if not order_ids:
            return {}

        with store_call("list payments for orders"):
            response = (
                self.client.table(PAYMENTS_TABLE)
                .select("*")
                .eq("user_email", user_email)
                .in_("order_id", order_ids)
                .order("created_at", desc=True)
                .execute()
            )

        grouped: dict[int, list[dict[str, Any]]] = {}
        for payment in response.data or []:
            grouped.setdefault(payment["order_id"], []).append(payment)
        return grouped

    async def has_paid_payment_for_order(self, order_id: int) -> bool:
        """Check whether any paid payment is linked to an order. Operator query."""
        with store_call("check paid payment"):
            response = (
                self.client.table(PAYMENTS_TABLE)
                .select("id")
                .eq("order_id", order_id)
                .eq("status", PaymentStatus.PAID.value)
                .limit(1)
                .execute()
            )

        return bool(response.data)
