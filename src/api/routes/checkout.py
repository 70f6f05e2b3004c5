"""Checkout API routes for the Razorpay payment flow."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import NotFoundError
from src.core.config import get_settings
from src.schemas.checkout import (
    CheckoutCompleteResponse,
    CheckoutOrderCreate,
    CheckoutOrderResponse,
    CheckoutStepResponse,
    GatewayOrderSchema,
    PaymentCallback,
    PaymentSessionResponse,
)
from src.schemas.order import OrderResponse
from src.services.checkout_service import CheckoutOrchestrator
from src.services.order_service import OrderService

router = APIRouter(prefix="/checkout", tags=["checkout"])

PAYMENT_DISMISSED_MESSAGE = "Payment was not completed. Your order is saved and you can retry payment."


async def _resume_checkout(order_id: int, email: str) -> CheckoutOrchestrator:
    """Rebuild the checkout for one of the caller's orders.

    Raises:
        NotFoundError: If the order does not exist or belongs to someone else.
    """
    order_service = OrderService()
    order = await order_service.get_order(order_id, email)
    if not order:
        raise NotFoundError("Order not found")

    orchestrator = CheckoutOrchestrator(email, order_service=order_service)
    orchestrator.resume(order)
    return orchestrator


@router.post(
    "/orders",
    response_model=CheckoutOrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create pending order",
    description="Creates a pending, unpaid order from the caller's cart and the submitted business and shipping details.",
)
async def create_checkout_order(data: CheckoutOrderCreate, user: CurrentUser) -> CheckoutOrderResponse:
    """Create a pending order from the cart.

    Args:
        data: Business and shipping details.
        user: Authenticated user.

    Returns:
        CheckoutOrderResponse: The pending order.

    Raises:
        ValidationError: 422 if the cart is empty or an item is unavailable.
        StoreUnavailableError: 503 if the order could not be saved.
    """
    orchestrator = CheckoutOrchestrator(user.email)
    orchestrator.submit_business_info(data.business)
    order = await orchestrator.submit_shipping(data.shipping)

    return CheckoutOrderResponse(
        state=orchestrator.state.value,
        order=OrderResponse.from_record(order),
        shipping_cost=get_settings().estimated_shipping_cost,
    )


@router.post(
    "/orders/{order_id}/payment",
    response_model=PaymentSessionResponse,
    summary="Start payment",
    description="Creates a Razorpay order for a pending order and returns the hosted checkout options. Call again to retry.",
)
async def start_payment(order_id: int, user: CurrentUser) -> PaymentSessionResponse:
    """Start (or retry) payment for a pending order.

    Args:
        order_id: The order to pay for.
        user: Authenticated user.

    Returns:
        PaymentSessionResponse: Gateway order and checkout options.

    Raises:
        NotFoundError: 404 if the order is not the caller's.
        CheckoutStateError: 409 if the order is not awaiting payment.
        GatewayError: 502 if Razorpay rejected the order.
    """
    orchestrator = await _resume_checkout(order_id, user.email)
    session = await orchestrator.start_payment()

    return PaymentSessionResponse(
        state=orchestrator.state.value,
        order_id=order_id,
        gateway_order=GatewayOrderSchema(**session["gateway_order"]),
        key_id=session["key_id"],
        checkout_options=session["checkout_options"],
        is_test_mode=session["is_test_mode"],
    )


@router.post(
    "/orders/{order_id}/payment/dismiss",
    response_model=CheckoutStepResponse,
    summary="Payment UI dismissed",
    description="Records that the user closed the payment UI. The order stays pending.",
)
async def dismiss_payment(order_id: int, user: CurrentUser) -> CheckoutStepResponse:
    """Acknowledge a dismissed payment UI."""
    orchestrator = await _resume_checkout(order_id, user.email)
    orchestrator.payment_dismissed()

    return CheckoutStepResponse(
        state=orchestrator.state.value,
        order_id=order_id,
        message=PAYMENT_DISMISSED_MESSAGE,
    )


@router.post(
    "/orders/{order_id}/payment/complete",
    response_model=CheckoutCompleteResponse,
    responses={
        400: {"model": CheckoutCompleteResponse, "description": "Payment could not be verified"},
    },
    summary="Complete payment",
    description="Verifies the Razorpay callback on the server and confirms the order.",
)
async def complete_payment(order_id: int, callback: PaymentCallback, user: CurrentUser) -> CheckoutCompleteResponse | JSONResponse:
    """Verify the payment callback and confirm the order.

    Args:
        order_id: The order being paid.
        callback: Razorpay callback relayed by the client.
        user: Authenticated user.

    Returns:
        CheckoutCompleteResponse: Redirect to the order on success, or a 400
        with the support message when verification fails.

    Raises:
        StoreUnavailableError: 503 if verification could not finish. Safe to retry.
    """
    orchestrator = await _resume_checkout(order_id, user.email)
    result = CheckoutCompleteResponse(**await orchestrator.complete_payment(callback))

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=result.model_dump(mode="json"),
        )
    return result
