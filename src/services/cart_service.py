"""Cart access for checkout."""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from src.api.middleware.error_handler import ValidationError
from src.core.supabase import get_supabase_client, store_call
from src.models.order import OrderLineItem

logger = logging.getLogger(__name__)

CART_TABLE = "cart"
PRODUCTS_TABLE = "Products"


@dataclass(frozen=True)
class CartItem:
    """A cart line priced against the product catalogue."""

    product_id: str
    name: str
    price: Decimal
    unit: str
    quantity: int

    def to_line_item(self) -> OrderLineItem:
        """Convert to an order line item."""
        return {
            "product_id": self.product_id,
            "name": self.name,
            "price": str(self.price),
            "unit": self.unit,
            "quantity": self.quantity,
        }


def _to_decimal(value: Any) -> Decimal | None:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


class CartService:
    """Reads and clears a user's cart.

    Cart rows hold a product snapshot taken when the item was added. Prices
    and stock are re-read from the catalogue at checkout.
    """

    def __init__(self) -> None:
        """Initialize cart service with Supabase client."""
        self.client = get_supabase_client()

    async def get_cart_items(self, email: str) -> list[CartItem]:
        """Get the user's cart priced against current catalogue data.

        Args:
            email: Owner email.

        Returns:
            list[CartItem]: Cart lines, possibly empty.

        Raises:
            ValidationError: If a product no longer exists, has no price, or
                lacks stock for the requested quantity.
            StoreUnavailableError: If the store cannot be read.
        """
        with store_call("read cart"):
            response = (
                self.client.table(CART_TABLE)
                .select("*")
                .eq("email", email)
                .order("created_at", desc=True)
                .execute()
            )

        rows = response.data or []
        if not rows:
            return []

        snapshots = [row.get("products") or {} for row in rows]
        product_ids = [str(s.get("id")) for s in snapshots if s.get("id") is not None]

        with store_call("read products"):
            products_response = (
                self.client.table(PRODUCTS_TABLE)
                .select("*")
                .in_("id", product_ids)
                .execute()
            )

        catalogue = {str(p["id"]): p for p in products_response.data or []}

        items: list[CartItem] = []
        requested: dict[str, int] = {}
        for snapshot in snapshots:
            product_id = str(snapshot.get("id"))
            product = catalogue.get(product_id)
            if not product:
                raise ValidationError(f"Product '{snapshot.get('name') or product_id}' is no longer available")

            price = _to_decimal(product.get("price"))
            if price is None or price < 0:
                raise ValidationError(f"Product '{product.get('name')}' has no valid price")

            quantity = max(int(snapshot.get("quantity") or 1), 1)
            requested[product_id] = requested.get(product_id, 0) + quantity

            items.append(
                CartItem(
                    product_id=product_id,
                    name=product.get("name") or snapshot.get("name") or product_id,
                    price=price,
                    unit=product.get("unit") or snapshot.get("unit") or "MT",
                    quantity=quantity,
                )
            )

        # The same product can sit in several cart rows.
        for product_id, quantity in requested.items():
            product = catalogue[product_id]
            stock = product.get("stock")
            if stock is not None and quantity > int(stock):
                raise ValidationError(
                    f"Only {stock} {product.get('unit') or 'MT'} of '{product.get('name')}' in stock",
                    details=[{"product_id": product_id, "requested": quantity, "available": int(stock)}],
                )

        return items

    async def clear_cart(self, email: str) -> int:
        """Remove all of a user's cart rows.

        Returns:
            int: Number of rows removed.
        """
        with store_call("clear cart"):
            response = self.client.table(CART_TABLE).delete().eq("email", email).execute()

        count = len(response.data) if response.data else 0
        logger.info("Cleared %d cart items for %s", count, email)
        return count
