"""Razorpay payment signature verification.

Razorpay signs a successful checkout with
``HMAC-SHA256(key_secret, "<order_id>|<payment_id>")`` and hands the hex
digest to the browser. The browser relays it to us, so the value is
untrusted until the SDK has recomputed it with the key secret, which never
leaves the server.
"""

import razorpay
from razorpay.errors import SignatureVerificationError


def verify_payment_signature(
    gateway_order_id: str,
    gateway_payment_id: str,
    signature: str,
    secret: str,
) -> bool:
    """Check a gateway-supplied signature in constant time.

    Args:
        gateway_order_id: Razorpay order id from the callback.
        gateway_payment_id: Razorpay payment id from the callback.
        signature: Signature from the callback.
        secret: Razorpay key secret.

    Returns:
        bool: True only if the signature matches.

    Raises:
        ValueError: If the secret is empty.
    """
    if not secret:
        raise ValueError("Signature secret is not configured")

    if not gateway_order_id or not gateway_payment_id or not signature:
        return False

    # The SDK reads the secret from the client's auth pair.
    utility = razorpay.Client(auth=("", secret)).utility
    try:
        return bool(
            utility.verify_payment_signature(
                {
                    "razorpay_order_id": gateway_order_id,
                    "razorpay_payment_id": gateway_payment_id,
                    "razorpay_signature": signature,
                }
            )
        )
    except SignatureVerificationError:
        return False
    except TypeError:
        # compare_digest rejects non-ASCII input
        return False
