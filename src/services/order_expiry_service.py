"""Cancellation of pending orders that were never paid."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from src.api.middleware.error_handler import StoreUnavailableError
from src.core.config import get_settings
from src.services.order_service import OrderService
from src.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


@dataclass
class ExpiryResult:
    """Summary of one sweep."""

    checked: int = 0
    expired: int = 0
    needs_reconciliation: int = 0


class PendingOrderExpiryService:
    """Cancels pending, unpaid orders older than the configured TTL.

    Orders that have a paid payment are left alone and logged, since money
    has moved and someone needs to look at them.
    """

    def __init__(
        self,
        order_service: OrderService | None = None,
        payment_service: PaymentService | None = None,
        ttl_hours: int | None = None,
        interval_seconds: int | None = None,
    ) -> None:
        """Initialize the expiry service.

        Args:
            order_service: Optional order store.
            payment_service: Optional payment store.
            ttl_hours: Age after which a pending order expires.
            interval_seconds: Seconds between background sweeps.
        """
        settings = get_settings()
        self.order_service = order_service or OrderService()
        self.payment_service = payment_service or PaymentService()
        self.ttl = timedelta(hours=ttl_hours or settings.pending_order_ttl_hours)
        self.interval_seconds = interval_seconds or settings.pending_order_sweep_interval_seconds
        self._sweep_task: asyncio.Task | None = None

    async def expire_stale_orders(self, now: datetime | None = None) -> ExpiryResult:
        """Run one sweep.

        Args:
            now: Current time (defaults to UTC now).

        Returns:
            ExpiryResult: Counts for this sweep.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - self.ttl
        result = ExpiryResult()

        for order in await self.order_service.find_stale_pending_orders(cutoff):
            result.checked += 1
            order_id = order["id"]

            if await self.payment_service.has_paid_payment_for_order(order_id):
                result.needs_reconciliation += 1
                logger.error(
                    "Pending order %s (%s) has a paid payment; needs manual reconciliation",
                    order_id,
                    order.get("email"),
                )
                continue

            if await self.order_service.expire_order(order_id):
                result.expired += 1
                logger.info("Expired pending order %s created at %s", order_id, order.get("created_at"))

        if result.checked:
            logger.info(
                "Pending order sweep: checked=%d expired=%d needs_reconciliation=%d",
                result.checked,
                result.expired,
                result.needs_reconciliation,
            )
        return result

    async def start_sweep_task(self) -> None:
        """Start background sweep task."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info("Pending order sweep task started (every %ds)", self.interval_seconds)

    async def stop_sweep_task(self) -> None:
        """Stop background sweep task."""
        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            logger.info("Pending order sweep task stopped")

    async def _sweep_loop(self) -> None:
        """Background loop that expires stale orders."""
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.expire_stale_orders()
            except StoreUnavailableError:
                logger.warning("Pending order sweep skipped, store unavailable")
            except Exception:
                logger.exception("Pending order sweep failed")
