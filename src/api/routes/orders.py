"""Order API routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import NotFoundError
from src.schemas.order import OrderListResponse, OrderResponse
from src.services.order_service import OrderService
from src.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List my orders",
    description="Returns the authenticated user's orders, newest first, with their payments.",
)
async def list_orders(
    user: CurrentUser,
    email: Annotated[str | None, Query(description="Owner email; must be the caller's own")] = None,
) -> OrderListResponse:
    """List the caller's orders.

    Asking for a different email returns an empty list.

    Args:
        user: Authenticated user.
        email: Optional owner email.

    Returns:
        OrderListResponse: List of orders.
    """
    orders = await OrderService().get_orders_for_user(email or user.email, requester_email=user.email)
    payments = await PaymentService().get_payments_for_orders(user.email, [o["id"] for o in orders])

    return OrderListResponse(
        items=[OrderResponse.from_record(order, payments.get(order["id"], [])) for order in orders]
    )


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="Returns one of the caller's orders.",
)
async def get_order(order_id: int, user: CurrentUser) -> OrderResponse:
    """Get a single order by ID.

    Raises:
        NotFoundError: 404 if the order is missing or not the caller's.
    """
    order = await OrderService().get_order(order_id, user.email)
    if not order:
        raise NotFoundError("Order not found")

    payments = await PaymentService().get_payments_for_orders(user.email, [order_id])
    return OrderResponse.from_record(order, payments.get(order_id, []))


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel order",
    description="Cancels one of the caller's orders if its status still allows it.",
)
async def cancel_order(order_id: int, user: CurrentUser) -> OrderResponse:
    """Cancel an order.

    Raises:
        NotFoundError: 404 if the order is missing or not the caller's.
        InvalidStatusTransitionError: 409 if the order can no longer be cancelled.
    """
    order = await OrderService().cancel_order(order_id, user.email)
    payments = await PaymentService().get_payments_for_orders(user.email, [order_id])
    return OrderResponse.from_record(order, payments.get(order_id, []))
