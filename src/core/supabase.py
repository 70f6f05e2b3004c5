"""Supabase client singleton for database operations."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache
from typing import Any

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from src.api.middleware.error_handler import StoreUnavailableError
from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Failures raised by the query builder when PostgREST rejects a request or
# cannot be reached.
STORE_ERRORS = (PostgrestAPIError, httpx.HTTPError)


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for database operations.

    Uses the secret key for backend operations, which bypasses RLS
    at the PostgREST level. Every query issued through this client must
    therefore carry its own ownership filter (the caller's email) unless
    it is an operator task such as the pending order sweep.

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


@contextmanager
def store_call(action: str) -> Iterator[None]:
    """Translate Supabase failures into a retryable API error.

    Args:
        action: Short description of the operation, used in logs.

    Raises:
        StoreUnavailableError: If the wrapped call failed.
    """
    try:
        yield
    except STORE_ERRORS as e:
        logger.error("Store call failed (%s): %s", action, str(e))
        raise StoreUnavailableError() from e


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Performs a simple query to verify database connectivity.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        client.table("orders").select("id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
