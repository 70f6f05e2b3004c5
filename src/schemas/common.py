"""Response bodies shared by every router."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body returned for any ``APIError``.

    ``error`` is the machine-readable type (``not_found``,
    ``store_unavailable``, ``gateway_error``...) the storefront branches on.
    """

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error description")
    details: list[dict[str, Any]] | None = Field(default=None, description="Field-level problems, if any")
    request_id: str | None = Field(default=None, description="X-Request-ID of the failed request")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Error timestamp")


class FailureResponse(BaseModel):
    """Body of the payment endpoints when they fail.

    The hosted checkout integration reads ``success`` and ``error`` only.
    """

    success: bool = Field(default=False, description="Always false")
    error: str = Field(description="Message safe to show the customer")
