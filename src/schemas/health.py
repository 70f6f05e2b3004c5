"""Health and readiness check schemas."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

SERVICE_NAME = "kinsa-checkout"
SERVICE_VERSION = "0.1.0"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Probe outcome."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness check body. Never touches the order store or the gateway."""

    status: HealthStatus = Field(description="Current health status")
    service: str = Field(default=SERVICE_NAME, description="Service name")
    version: str = Field(default=SERVICE_VERSION, description="API version")
    timestamp: datetime = Field(default_factory=_now, description="Check timestamp")


class CheckResult(BaseModel):
    """One readiness dependency, e.g. ``database`` or ``razorpay``."""

    name: str = Field(description="Dependency name")
    healthy: bool = Field(description="Whether checkout can rely on it")
    latency_ms: float | None = Field(default=None, description="Round trip in milliseconds, if measured")
    error: str | None = Field(default=None, description="Why the dependency is unhealthy")


class ReadinessResponse(BaseModel):
    """Readiness check body. Unhealthy if any check failed."""

    status: HealthStatus = Field(description="Overall readiness status")
    timestamp: datetime = Field(default_factory=_now, description="Check timestamp")
    checks: list[CheckResult] = Field(default_factory=list, description="Individual check results")

    @property
    def failed_checks(self) -> list[str]:
        return [check.name for check in self.checks if not check.healthy]
