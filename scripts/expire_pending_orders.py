#!/usr/bin/env python
"""Script to cancel pending orders that were never paid.

This script:
1. Finds orders that are still pending and unpaid after the configured TTL
2. Cancels those that have no paid payment
3. Reports orders that have a paid payment for manual reconciliation

Usage:
    python scripts/expire_pending_orders.py [--ttl-hours 72]

Requirements:
    - SUPABASE_URL and SUPABASE_SECRET_KEY environment variables must be set

Note:
    - The API server runs the same sweep in the background unless
      PENDING_ORDER_SWEEP_ENABLED=false; use this script when it is disabled.
    - Exits with status 1 if any order needs reconciliation.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.config import get_settings
from src.services.order_expiry_service import PendingOrderExpiryService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cancel stale pending orders")
    parser.add_argument(
        "--ttl-hours",
        type=int,
        default=None,
        help="Age in hours after which a pending order expires (default: PENDING_ORDER_TTL_HOURS)",
    )
    return parser.parse_args()


async def main() -> None:
    """Main entry point for the expiry script."""
    args = parse_args()
    ttl_hours = args.ttl_hours or get_settings().pending_order_ttl_hours
    logger.info("Expiring pending orders older than %d hours...", ttl_hours)

    try:
        result = await PendingOrderExpiryService(ttl_hours=ttl_hours).expire_stale_orders()

        logger.info("=" * 60)
        logger.info("Pending order sweep complete!")
        logger.info(f"Stale orders checked: {result.checked}")
        logger.info(f"Orders cancelled: {result.expired}")
        logger.info(f"Needing reconciliation: {result.needs_reconciliation}")
        logger.info("=" * 60)

        if result.needs_reconciliation > 0:
            logger.warning("Some pending orders have paid payments. Check logs for details.")
            sys.exit(1)

    except Exception as e:
        logger.error(f"Pending order sweep failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
