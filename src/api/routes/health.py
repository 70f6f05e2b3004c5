"""Health check endpoints for monitoring and deployment verification."""

import logging
import time

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentUser
from src.core.config import get_settings
from src.core.supabase import check_database_connection
from src.schemas.auth import AuthenticatedResponse
from src.schemas.health import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness checks.",
)
async def health_check() -> HealthResponse:
    """Return basic health status.

    Does not check external dependencies.

    Returns:
        HealthResponse: Current health status with timestamp.
    """
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Readiness check",
    description="Check if the order store is reachable and the payment gateway is configured.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check readiness of all dependencies.

    Verifies:
    - Database connectivity (Supabase)
    - Razorpay credentials are configured

    Returns 503 if any dependency is unhealthy.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of all dependency checks.
    """
    checks: list[CheckResult] = []

    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks.append(
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error=db_result.get("error"),
        )
    )

    razorpay_configured = get_settings().is_razorpay_configured
    checks.append(
        CheckResult(
            name="razorpay",
            healthy=razorpay_configured,
            error=None if razorpay_configured else "Razorpay credentials not configured",
        )
    )

    all_healthy = all(check.healthy for check in checks)
    overall_status = HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY

    readiness = ReadinessResponse(status=overall_status, checks=checks)
    if not all_healthy:
        logger.warning("Readiness check failed: %s", ", ".join(readiness.failed_checks))
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return readiness


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    summary="Authenticated health check",
    description="Protected endpoint to verify authentication is working correctly.",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Authentication required or invalid token"},
    },
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    """Return authenticated user information.

    Args:
        user: The authenticated user context from JWT.

    Returns:
        AuthenticatedResponse: User information from the token.
    """
    return AuthenticatedResponse(
        authenticated=True,
        user_id=str(user.user_id),
        email=user.email,
        role=user.role,
    )
