"""Razorpay SDK client configuration with timing and retry logic."""

import asyncio
import logging
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import razorpay
import requests
from razorpay.errors import BadRequestError, GatewayError, ServerError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Retry configuration. Only failures where the request never reached
# Razorpay are retried, so a retry cannot create a second gateway order.
# ConnectTimeout is a subclass of ConnectionError; ReadTimeout is not.
MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 5
RETRYABLE_ERRORS = (requests.exceptions.ConnectionError,)

SLOW_CALL_THRESHOLD_MS = 2000

# Razorpay accepts at most 15 notes of 256 characters each.
MAX_GATEWAY_NOTES = 15
MAX_GATEWAY_NOTE_LENGTH = 256


class RazorpayError(Exception):
    """Razorpay returned an error or could not be reached."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (rupees) to minor units (paise)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compact_gateway_notes(notes: dict[str, Any] | None) -> dict[str, str]:
    """Reduce notes to what Razorpay will accept.

    Nested values are dropped (the full snapshot is kept in our own payment
    record), scalars are stringified and truncated.
    """
    compact: dict[str, str] = {}
    for key, value in (notes or {}).items():
        if len(compact) >= MAX_GATEWAY_NOTES:
            break
        if value is None or isinstance(value, (dict, list)):
            continue
        compact[str(key)] = str(value)[:MAX_GATEWAY_NOTE_LENGTH]
    return compact


class RazorpayClient:
    """Wraps the Razorpay SDK client for the orders API.

    The SDK is synchronous, so calls run in a worker thread.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            key_id: Razorpay key id.
            key_secret: Razorpay key secret.
            timeout: Request timeout in seconds.
            session: Optional requests session (used by tests).
        """
        self.key_id = key_id
        self._key_secret = key_secret
        self.timeout = timeout
        self.sdk = razorpay.Client(session=session, auth=(key_id, key_secret))

    @classmethod
    def from_settings(cls) -> "RazorpayClient":
        """Create a client from application settings."""
        settings = get_settings()
        if not settings.is_razorpay_configured:
            logger.warning("Razorpay keys not configured. Payments will not work.")
        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            timeout=settings.razorpay_timeout_seconds,
        )

    @property
    def is_configured(self) -> bool:
        """Check if credentials are present."""
        return bool(self.key_id and self._key_secret)

    @retry(
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
        reraise=True,
    )
    def _create(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Create the order through the SDK, retrying connection failures."""
        return self.sdk.order.create(data=payload, timeout=self.timeout)

    async def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Create a Razorpay order.

        Args:
            amount_minor: Amount in minor units (paise).
            currency: ISO currency code.
            receipt: Merchant receipt reference.
            notes: Gateway notes (already compacted).

        Returns:
            dict: Razorpay order object.

        Raises:
            RazorpayError: On transport failure or an error response.
        """
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        start_time = time.perf_counter()

        try:
            return await asyncio.to_thread(self._create, payload)
        except (BadRequestError, GatewayError, ServerError) as e:
            description = str(e) or "Razorpay order creation failed"
            logger.error("Razorpay rejected order (%s): %s", type(e).__name__, description)
            raise RazorpayError(description, code=type(e).__name__) from e
        except requests.exceptions.RequestException as e:
            logger.error("Razorpay order creation failed: %s: %s", type(e).__name__, str(e))
            raise RazorpayError(f"Could not reach Razorpay: {type(e).__name__}") from e
        except ValueError as e:
            # Error responses that are not JSON fail inside the SDK's parser.
            logger.error("Unreadable Razorpay response: %s", str(e))
            raise RazorpayError("Unreadable response from Razorpay") from e
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            log_msg = f"Razorpay create order: receipt={receipt}, latency={latency_ms:.2f}ms"
            if latency_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning(f"SLOW Razorpay call: {log_msg}")
            else:
                logger.info(log_msg)


def get_razorpay_client() -> RazorpayClient:
    """Get a Razorpay client configured from settings."""
    return RazorpayClient.from_settings()
