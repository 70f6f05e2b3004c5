"""Order record store business logic."""

import json
import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.api.middleware.error_handler import InvalidStatusTransitionError, NotFoundError
from src.core.supabase import get_supabase_client, store_call
from src.models.order import (
    OrderCreate,
    OrderLineItem,
    OrderStatus,
    PaymentState,
    can_transition_order,
)

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"


def compute_order_total(items: list[OrderLineItem], shipping_cost: Decimal) -> Decimal:
    """Sum line items and add the shipping cost.

    Args:
        items: Line items with decimal-string prices.
        shipping_cost: Shipping cost in major currency units.

    Returns:
        Decimal: Order total in major currency units.
    """
    subtotal = sum(
        (Decimal(str(item["price"])) * int(item["quantity"]) for item in items),
        Decimal("0"),
    )
    return subtotal + shipping_cost


def serialize_line_items(items: list[OrderLineItem]) -> str:
    """Serialise line items for the ``products`` column."""
    return json.dumps(
        [
            {
                "product_id": str(item["product_id"]),
                "name": item["name"],
                "price": str(item["price"]),
                "unit": item.get("unit") or "MT",
                "quantity": int(item["quantity"]),
            }
            for item in items
        ]
    )


def parse_phone_number(phone: str | None) -> int | None:
    """Keep the digits of a phone number for the numeric ``number`` column."""
    digits = re.sub(r"\D", "", phone or "")
    return int(digits) if digits else None


def build_order_record(
    email: str,
    customer: dict[str, Any],
    shipping: dict[str, Any],
    items: list[OrderLineItem],
    shipping_cost: Decimal,
    status: OrderStatus,
    payment: PaymentState,
    razorpay_order_id: str | None = None,
) -> OrderCreate:
    """Build an ``orders`` row.

    Used both by checkout and when an order is rebuilt from the snapshot a
    payment carries, so the two paths always produce the same columns.

    Args:
        email: Owner email.
        customer: ``name``, ``company``, ``phone``, ``import_export_code``
            (``first_name``, ``last_name`` and ``email`` are ignored here).
        shipping: ``shipping_address``, ``city``, ``country``, ``incoterms``,
            ``instructions``.
        items: Order line items.
        shipping_cost: Shipping cost in major currency units.
        status: Initial order status.
        payment: Initial payment state.
        razorpay_order_id: Gateway order id for reconstructed orders.

    Returns:
        OrderCreate: Insertable row.
    """
    address_parts = [shipping.get("shipping_address"), shipping.get("city"), shipping.get("country")]
    record: OrderCreate = {
        "name": customer.get("name") or "",
        "email": email,
        "company": customer.get("company"),
        "products": serialize_line_items(items),
        "number": parse_phone_number(customer.get("phone")),
        "import_export_code": customer.get("import_export_code") or None,
        "shipping_address": ", ".join(part for part in address_parts if part),
        "port": shipping.get("city") or "",
        "country": shipping.get("country") or "",
        "status": status.value,
        "incoterms": shipping.get("incoterms"),
        "instructions": shipping.get("instructions") or None,
        "total_amount": str(compute_order_total(items, shipping_cost)),
        "payment": payment.value,
    }
    if razorpay_order_id:
        record["razorpay_order_id"] = razorpay_order_id
    return record


def build_order_notes(
    order_id: int | None,
    user_email: str,
    customer: dict[str, Any],
    shipping: dict[str, Any],
    items: list[OrderLineItem],
    shipping_cost: Decimal,
) -> dict[str, Any]:
    """Build the checkout snapshot stored in a payment's notes.

    Uses the same keys the storefront client sends, so a payment started by
    either path can be turned back into an order.
    """
    first_name, _, last_name = (customer.get("name") or "").partition(" ")
    notes: dict[str, Any] = {
        "firstName": customer.get("first_name") or first_name,
        "lastName": customer.get("last_name") or last_name,
        "companyName": customer.get("company"),
        "email": customer.get("email") or user_email,
        "phone": customer.get("phone"),
        "iecTaxId": customer.get("import_export_code"),
        "shippingAddress": shipping.get("shipping_address"),
        "city": shipping.get("city"),
        "country": shipping.get("country"),
        "incoterms": shipping.get("incoterms"),
        "specialInstructions": shipping.get("instructions"),
        "items": [dict(item) for item in items],
        "shippingCost": str(shipping_cost),
        "total_amount": str(compute_order_total(items, shipping_cost)),
        "user_email": user_email,
    }
    if order_id is not None:
        notes["order_id"] = order_id
    return notes


def order_notes_from_record(order: dict[str, Any], user_email: str) -> dict[str, Any]:
    """Build payment notes for an existing order row.

    The shipping cost is whatever the stored total holds beyond the items,
    so the snapshot matches the order even if the configured cost changed.
    """
    items = [
        {
            "product_id": item["product_id"],
            "name": item["name"],
            "price": str(item["price"]),
            "unit": item.get("unit") or "MT",
            "quantity": int(item["quantity"]),
        }
        for item in json.loads(order.get("products") or "[]")
    ]
    customer = {
        "name": order.get("name"),
        "company": order.get("company"),
        "phone": str(order["number"]) if order.get("number") else None,
        "import_export_code": order.get("import_export_code"),
    }
    shipping = {
        "shipping_address": order.get("shipping_address"),
        "city": order.get("port"),
        "country": order.get("country"),
        "incoterms": order.get("incoterms"),
        "instructions": order.get("instructions"),
    }
    shipping_cost = Decimal(str(order["total_amount"])) - compute_order_total(items, Decimal("0"))
    return build_order_notes(order["id"], user_email, customer, shipping, items, shipping_cost)


def _line_item_from_note(item: dict[str, Any]) -> OrderLineItem:
    # Storefront clients nest the product; checkout stores flat line items.
    product = item.get("product") or item
    return {
        "product_id": str(product.get("product_id") or product.get("id")),
        "name": product.get("name") or "",
        "price": str(Decimal(str(product.get("price")))),
        "unit": product.get("unit") or "MT",
        "quantity": int(item.get("quantity") or 1),
    }


def order_record_from_notes(email: str, notes: dict[str, Any], razorpay_order_id: str) -> OrderCreate | None:
    """Rebuild a confirmed, paid order from a payment's notes snapshot.

    Args:
        email: Authenticated owner email (the snapshot's email is not trusted).
        notes: Payment notes.
        razorpay_order_id: Gateway order the payment belongs to.

    Returns:
        OrderCreate | None: The order row, or None if the snapshot is incomplete.
    """
    if not notes.get("firstName") or not notes.get("items"):
        return None

    try:
        items = [_line_item_from_note(item) for item in notes["items"]]
        shipping_cost = Decimal(str(notes.get("shippingCost") or 0))
    except (ArithmeticError, ValueError, TypeError, AttributeError) as e:
        logger.warning("Unusable order snapshot on gateway order %s: %s", razorpay_order_id, str(e))
        return None

    customer = {
        "name": f"{notes.get('firstName')} {notes.get('lastName') or ''}".strip(),
        "company": notes.get("companyName"),
        "phone": notes.get("phone"),
        "import_export_code": notes.get("iecTaxId"),
    }
    shipping = {
        "shipping_address": notes.get("shippingAddress"),
        "city": notes.get("city"),
        "country": notes.get("country"),
        "incoterms": notes.get("incoterms"),
        "instructions": notes.get("specialInstructions"),
    }
    return build_order_record(
        email=email,
        customer=customer,
        shipping=shipping,
        items=items,
        shipping_cost=shipping_cost,
        status=OrderStatus.CONFIRMED,
        payment=PaymentState.PAID,
        razorpay_order_id=razorpay_order_id,
    )


class OrderService:
    """Service for reading and updating orders.

    Every read and write is scoped to the owner's email, except the
    operator methods used by the pending order sweep.
    """

    def __init__(self) -> None:
        """Initialize order service with Supabase client."""
        self.client = get_supabase_client()

    async def create_order(self, record: OrderCreate) -> int:
        """Insert an order.

        Args:
            record: Row built with ``build_order_record``.

        Returns:
            int: The new order's id.

        Raises:
            StoreUnavailableError: If the insert fails.
        """
        with store_call("create order"):
            response = self.client.table(ORDERS_TABLE).insert(record).execute()

        order_id = response.data[0]["id"]
        logger.info("Created order %s for %s (total %s)", order_id, record["email"], record["total_amount"])
        return order_id

    async def insert_order_if_absent(self, record: OrderCreate) -> dict[str, Any] | None:
        """Insert an order unless one exists for the same gateway order id.

        Args:
            record: Row carrying ``razorpay_order_id``.

        Returns:
            dict | None: The inserted row, or None if another request already
            created the order.
        """
        with store_call("insert order if absent"):
            response = (
                self.client.table(ORDERS_TABLE)
                .upsert(record, on_conflict="razorpay_order_id", ignore_duplicates=True)
                .execute()
            )

        if response.data:
            logger.info(
                "Reconstructed order %s from gateway order %s",
                response.data[0]["id"],
                record.get("razorpay_order_id"),
            )
            return response.data[0]
        return None

    async def get_order(self, order_id: int, email: str) -> dict[str, Any] | None:
        """Get an order owned by ``email``.

        Returns:
            dict | None: The order, or None if missing or owned by someone else.
        """
        with store_call("get order"):
            response = (
                self.client.table(ORDERS_TABLE)
                .select("*")
                .eq("id", order_id)
                .eq("email", email)
                .maybe_single()
                .execute()
            )

        return response.data if response and response.data else None

    async def get_orders_for_user(self, email: str, requester_email: str | None = None) -> list[dict[str, Any]]:
        """Get a user's orders, newest first.

        Args:
            email: Whose orders to list.
            requester_email: Authenticated caller. A caller asking for
                another user's orders gets an empty list.

        Returns:
            list[dict]: Orders.
        """
        if requester_email is not None and requester_email.strip().lower() != email.strip().lower():
            logger.warning("User %s requested orders for a different email", requester_email)
            return []

        with store_call("list orders"):
            response = (
                self.client.table(ORDERS_TABLE)
                .select("*")
                .eq("email", email)
                .order("created_at", desc=True)
                .execute()
            )

        return response.data or []

    async def find_order_by_gateway_order_id(self, razorpay_order_id: str, email: str) -> dict[str, Any] | None:
        """Find an order reconstructed from the given gateway order."""
        with store_call("find order by gateway order"):
            response = (
                self.client.table(ORDERS_TABLE)
                .select("*")
                .eq("razorpay_order_id", razorpay_order_id)
                .eq("email", email)
                .maybe_single()
                .execute()
            )

        return response.data if response and response.data else None

    async def update_order_status(
        self,
        order_id: int,
        email: str,
        status: OrderStatus,
        payment: PaymentState | None = None,
    ) -> int:
        """Move an order to a new status.

        The write only applies if the status is still the one that was read,
        so a concurrent change makes this a no-op.

        Args:
            order_id: Order to update.
            email: Owner email. Orders owned by someone else are not touched.
            status: Target status.
            payment: Optional new payment state.

        Returns:
            int: Number of rows updated (0 or 1).

        Raises:
            InvalidStatusTransitionError: If the transition is not allowed.
        """
        order = await self.get_order(order_id, email)
        if not order:
            logger.warning("Status update for unknown or foreign order %s by %s", order_id, email)
            return 0

        try:
            current = OrderStatus.from_db(order["status"])
        except ValueError as e:
            raise InvalidStatusTransitionError(str(order["status"]), status.value) from e

        if not can_transition_order(current, status):
            raise InvalidStatusTransitionError(current.value, status.value)

        update_data: dict[str, Any] = {"status": status.value}
        if payment is not None:
            update_data["payment"] = payment.value

        with store_call("update order status"):
            response = (
                self.client.table(ORDERS_TABLE)
                .update(update_data)
                .eq("id", order_id)
                .eq("email", email)
                .eq("status", order["status"])
                .execute()
            )

        rows = len(response.data) if response.data else 0
        if rows:
            logger.info("Order %s moved from %s to %s", order_id, current.value, status.value)
        else:
            logger.warning("Order %s changed concurrently, status update skipped", order_id)
        return rows

    async def cancel_order(self, order_id: int, email: str) -> dict[str, Any]:
        """Cancel an order on behalf of its owner.

        Returns:
            dict: The updated order.

        Raises:
            NotFoundError: If the order does not exist or is not owned by ``email``.
            InvalidStatusTransitionError: If the order can no longer be cancelled.
        """
        order = await self.get_order(order_id, email)
        if not order:
            raise NotFoundError("Order not found")

        rows = await self.update_order_status(order_id, email, OrderStatus.CANCELLED)
        if rows == 0:
            raise InvalidStatusTransitionError(order["status"], OrderStatus.CANCELLED.value)

        return {**order, "status": OrderStatus.CANCELLED.value}

    async def find_stale_pending_orders(self, older_than: datetime) -> list[dict[str, Any]]:
        """List pending, unpaid orders created before ``older_than``.

        Operator query across all users.
        """
        with store_call("find stale pending orders"):
            response = (
                self.client.table(ORDERS_TABLE)
                .select("*")
                .eq("status", OrderStatus.PENDING.value)
                .eq("payment", PaymentState.UNPAID.value)
                .lt("created_at", older_than.isoformat())
                .execute()
            )

        return response.data or []

    async def expire_order(self, order_id: int) -> int:
        """Cancel a pending, unpaid order. Operator method.

        Returns:
            int: Number of rows updated (0 if the order moved on meanwhile).
        """
        with store_call("expire order"):
            response = (
                self.client.table(ORDERS_TABLE)
                .update({"status": OrderStatus.CANCELLED.value})
                .eq("id", order_id)
                .eq("status", OrderStatus.PENDING.value)
                .eq("payment", PaymentState.UNPAID.value)
                .execute()
            )

        return len(response.data) if response.data else 0
