"""Email service using Resend for transactional emails."""

import html
import logging
from typing import Any

import resend

from src.core.config import get_settings
from src.schemas.order import parse_line_items

logger = logging.getLogger(__name__)


class EmailService:
    """Service for sending transactional emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.enabled = bool(settings.resend_api_key)
        self.from_email = settings.email_from_address
        self.frontend_url = settings.frontend_url
        self.currency = settings.default_currency

    async def send_order_confirmation_email(
        self,
        to_email: str,
        order: dict[str, Any],
    ) -> dict[str, Any]:
        """Send an order confirmation email.

        Failures are logged and reported in the result; a confirmed order
        stays confirmed whether or not the email goes out.

        Args:
            to_email: Recipient email address.
            order: The confirmed ``orders`` row.

        Returns:
            dict: ``success`` plus the Resend email id or an error.
        """
        if not self.enabled:
            logger.info("Resend not configured, skipping confirmation email for order %s", order.get("id"))
            return {"success": False, "error": "Email not configured"}

        order_id = order.get("id")
        order_url = f"{self.frontend_url}/orders/{order_id}"
        name = html.escape(order.get("name") or "there")
        items = parse_line_items(order.get("products"))

        rows = "".join(
            f"""
            <tr>
                <td style="padding: 8px; border-bottom: 1px solid #e5e7eb;">{html.escape(item.name)}</td>
                <td style="padding: 8px; border-bottom: 1px solid #e5e7eb; text-align: right;">{item.quantity} {html.escape(item.unit)}</td>
                <td style="padding: 8px; border-bottom: 1px solid #e5e7eb; text-align: right;">{self.currency} {item.price * item.quantity:,.2f}</td>
            </tr>"""
            for item in items
        )
        total = order.get("total_amount") or "0"

        html_content = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Order Confirmed</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #166534; padding: 30px; border-radius: 10px 10px 0 0; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 24px;">Order #{order_id} Confirmed</h1>
    </div>

    <div style="background: #f9fafb; padding: 30px; border: 1px solid #e5e7eb; border-top: none; border-radius: 0 0 10px 10px;">
        <p style="font-size: 16px;">Hi {name}, thank you for your order. Your payment has been received.</p>

        <table style="width: 100%; border-collapse: collapse; font-size: 14px; margin: 20px 0;">
            {rows}
            <tr>
                <td colspan="2" style="padding: 8px; font-weight: 600;">Total (incl. shipping)</td>
                <td style="padding: 8px; text-align: right; font-weight: 600;">{self.currency} {total}</td>
            </tr>
        </table>

        <p style="font-size: 14px; color: #6b7280;">
            Shipping to {html.escape(order.get("shipping_address") or "")} ({html.escape(order.get("incoterms") or "")}).
        </p>

        <div style="text-align: center; margin: 30px 0;">
            <a href="{order_url}" style="background: #166534; color: white; padding: 14px 32px; text-decoration: none; border-radius: 8px; font-weight: 600; font-size: 16px; display: inline-block;">
                View Order
            </a>
        </div>
    </div>
</body>
</html>
"""

        text_content = f"""
Order #{order_id} Confirmed

Hi {order.get("name") or "there"}, thank you for your order. Your payment has been received.

Total (incl. shipping): {self.currency} {total}

View your order here:
{order_url}
"""

        try:
            response = resend.Emails.send({
                "from": self.from_email,
                "to": [to_email],
                "subject": f"Your KINSA Global order #{order_id} is confirmed",
                "html": html_content,
                "text": text_content,
            })

            logger.info("Order confirmation email sent to %s, id: %s", to_email, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send order confirmation email to %s: %s", to_email, str(e))
            return {"success": False, "error": str(e)}
