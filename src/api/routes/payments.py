"""Payment API routes for Razorpay order creation and verification."""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import (
    CONTACT_SUPPORT_MESSAGE,
    GatewayError,
    GatewayNotConfiguredError,
    InvalidSignatureError,
    NotFoundError,
    PaymentMismatchError,
    ValidationError,
)
from src.core.config import get_settings
from src.schemas.checkout import GatewayOrderSchema
from src.schemas.common import FailureResponse
from src.schemas.payment import (
    GatewayOrderCreate,
    GatewayOrderResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentVerifyRequest,
    PaymentVerifyResponse,
)
from src.services.gateway_service import PaymentGatewayService
from src.services.payment_service import PaymentService
from src.services.verification_service import PaymentVerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=FailureResponse(error=error).model_dump())


@router.post(
    "/razorpay/orders",
    response_model=GatewayOrderResponse,
    responses={
        400: {"model": GatewayOrderResponse, "description": "Invalid amount or currency"},
        502: {"model": GatewayOrderResponse, "description": "Razorpay rejected the order"},
        503: {"model": GatewayOrderResponse, "description": "Razorpay not configured"},
    },
    summary="Create Razorpay order",
    description="Creates a Razorpay order and records it as a created payment for the caller.",
)
async def create_razorpay_order(data: GatewayOrderCreate, user: CurrentUser) -> GatewayOrderResponse | JSONResponse:
    """Create a Razorpay order.

    Args:
        data: Amount in major units, currency, receipt and notes.
        user: Authenticated user.

    Returns:
        GatewayOrderResponse: The gateway order and the key id for the checkout UI.
    """
    try:
        gateway_order = await PaymentGatewayService().create_gateway_order(
            amount=data.amount,
            currency=data.currency,
            receipt=data.receipt,
            user_email=user.email,
            notes=data.notes,
        )
    except ValidationError as e:
        return _failure(status.HTTP_400_BAD_REQUEST, e.message)
    except (GatewayError, GatewayNotConfiguredError) as e:
        return _failure(e.status_code, e.message)

    return GatewayOrderResponse(
        success=True,
        order=GatewayOrderSchema(**gateway_order),
        key_id=get_settings().razorpay_key_id,
    )


@router.post(
    "/razorpay/verify",
    response_model=PaymentVerifyResponse,
    responses={
        400: {"model": PaymentVerifyResponse, "description": "Missing fields or verification failed"},
        401: {"description": "Authentication required"},
    },
    summary="Verify Razorpay payment",
    description="Checks the Razorpay signature on the server, marks the payment paid and confirms its order.",
)
async def verify_razorpay_payment(data: PaymentVerifyRequest, user: CurrentUser) -> PaymentVerifyResponse | JSONResponse:
    """Verify a Razorpay payment callback.

    Args:
        data: Callback fields plus the optional order id.
        user: Authenticated user.

    Returns:
        PaymentVerifyResponse: ``success`` and the confirmed order id.

    Raises:
        StoreUnavailableError: 503 if the payment could not be recorded. Safe to retry.
    """
    if not data.razorpay_order_id or not data.razorpay_payment_id or not data.razorpay_signature:
        return _failure(status.HTTP_400_BAD_REQUEST, "Missing payment verification fields")

    try:
        result = await PaymentVerificationService().verify_payment(
            user_email=user.email,
            razorpay_order_id=data.razorpay_order_id,
            razorpay_payment_id=data.razorpay_payment_id,
            razorpay_signature=data.razorpay_signature,
            order_id=data.order_id,
        )
    except InvalidSignatureError as e:
        return _failure(status.HTTP_400_BAD_REQUEST, e.message)
    except (PaymentMismatchError, NotFoundError) as e:
        logger.warning("Payment %s not verified: %s", data.razorpay_payment_id, e.message)
        return _failure(e.status_code, CONTACT_SUPPORT_MESSAGE)

    return PaymentVerifyResponse(
        success=True,
        message="Payment already verified" if result.already_verified else "Payment verified successfully",
        order_id=result.order_id,
    )


@router.get(
    "",
    response_model=PaymentListResponse,
    summary="List my payments",
    description="Returns the authenticated user's payments, newest first.",
)
async def list_payments(user: CurrentUser) -> PaymentListResponse:
    """List the caller's payment history."""
    payments = await PaymentService().get_payments_for_user(user.email)
    return PaymentListResponse(items=[PaymentResponse(**p) for p in payments])
