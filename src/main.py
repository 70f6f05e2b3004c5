"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from src.api.middleware.error_handler import error_handler_middleware
from src.api.middleware.latency_logging import latency_logging_middleware
from src.api.middleware.request_size import request_size_limit_middleware
from src.api.routes import checkout, countries, health, orders, payments
from src.core.cache import TTLCache, TTLCacheConfig
from src.core.config import get_settings
from src.services.order_expiry_service import PendingOrderExpiryService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Starts the pending order sweep on startup and stops it on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control back to the application.
    """
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.app_name, settings.app_env)

    if not settings.is_razorpay_configured:
        logger.warning("Razorpay credentials not configured; payment endpoints will return 503")
    elif settings.is_razorpay_test_mode:
        logger.info("Razorpay running with test keys")

    expiry_service: PendingOrderExpiryService | None = None
    if settings.pending_order_sweep_enabled:
        expiry_service = PendingOrderExpiryService()
        await expiry_service.start_sweep_task()

    yield

    if expiry_service:
        await expiry_service.stop_sweep_task()
    cleared = app.state.countries_cache.clear()
    logger.info("Countries cache cleared (%d entries)", cleared)
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="KINSA Global Storefront API",
        description="Checkout, payment and order backend for the KINSA Global export storefront",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Reference data cache, owned by this app instance
    app.state.countries_cache = TTLCache(
        TTLCacheConfig(max_size=16, ttl_seconds=settings.countries_cache_ttl_seconds)
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handler middleware (outermost - catches all errors)
    app.add_middleware(BaseHTTPMiddleware, dispatch=error_handler_middleware)

    # Add latency logging middleware (tracks request timing)
    app.add_middleware(BaseHTTPMiddleware, dispatch=latency_logging_middleware)

    # Add request size limit middleware (rejects oversized requests early)
    app.add_middleware(BaseHTTPMiddleware, dispatch=request_size_limit_middleware)

    # Mount health routes at root level (no prefix)
    app.include_router(health.router)

    # Create API v1 router for versioned endpoints
    api_v1_router = APIRouter(prefix="/api/v1")

    # Checkout flow and payment gateway routes
    api_v1_router.include_router(checkout.router)
    api_v1_router.include_router(payments.router)

    # Order history routes
    api_v1_router.include_router(orders.router)

    # Reference data routes
    api_v1_router.include_router(countries.router)

    app.include_router(api_v1_router)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
