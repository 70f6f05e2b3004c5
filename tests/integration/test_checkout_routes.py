"""Integration tests for checkout API endpoints."""

from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.api.middleware.error_handler import CONTACT_SUPPORT_MESSAGE
from tests.fakes import OTHER_EMAIL, RAZORPAY_SECRET, FakeRazorpay, FakeSupabase, compute_payment_signature

CHECKOUT_BODY = {
    "business": {
        "first_name": "Asha",
        "last_name": "Rao",
        "company_name": "Rao Exports",
        "email": "asha@raoexports.example",
        "phone": "+91 98765 43210",
        "iec_tax_id": "IEC0001",
    },
    "shipping": {
        "shipping_address": "Dock 4, JNPT",
        "city": "Mumbai",
        "country": "India",
        "incoterms": "CIF",
        "special_instructions": None,
    },
}


def create_order(client: TestClient) -> dict[str, Any]:
    response = client.post("/api/v1/checkout/orders", json=CHECKOUT_BODY)
    assert response.status_code == 201
    return response.json()


def callback(razorpay_order_id: str, payment_id: str = "pay_1", signature: str | None = None) -> dict[str, str]:
    return {
        "razorpay_order_id": razorpay_order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature or compute_payment_signature(razorpay_order_id, payment_id, RAZORPAY_SECRET),
    }


class TestCreateCheckoutOrder:
    """Tests for POST /api/v1/checkout/orders."""

    def test_creates_pending_order(self, auth_client: TestClient, wheat_cart: FakeSupabase) -> None:
        data = create_order(auth_client)

        assert data["state"] == "order_created"
        assert Decimal(data["shipping_cost"]) == Decimal("120000")
        order = data["order"]
        assert order["status"] == "pending"
        assert order["payment"] == "unpaid"
        assert order["status_text"] == "Payment Pending"
        assert Decimal(order["total_amount"]) == Decimal("820000")
        assert order["items"][0]["name"] == "Wheat"
        assert order["email"] == "buyer@example.com"

    def test_empty_cart(self, auth_client: TestClient, fake_supabase: FakeSupabase) -> None:
        response = auth_client.post("/api/v1/checkout/orders", json=CHECKOUT_BODY)

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"
        assert response.json()["message"] == "Your cart is empty"
        assert fake_supabase.rows("orders") == []

    def test_invalid_business_details(self, auth_client: TestClient, wheat_cart: FakeSupabase) -> None:
        body = {**CHECKOUT_BODY, "business": {**CHECKOUT_BODY["business"], "email": "not-an-email"}}

        response = auth_client.post("/api/v1/checkout/orders", json=body)

        assert response.status_code == 422
        assert wheat_cart.rows("orders") == []

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.post("/api/v1/checkout/orders", json=CHECKOUT_BODY)

        assert response.status_code == 401

    def test_store_unavailable(self, auth_client: TestClient, wheat_cart: FakeSupabase) -> None:
        wheat_cart.failures.add(("orders", "insert"))

        response = auth_client.post("/api/v1/checkout/orders", json=CHECKOUT_BODY)

        assert response.status_code == 503
        assert response.json()["error"] == "store_unavailable"


class TestStartPayment:
    """Tests for POST /api/v1/checkout/orders/{id}/payment."""

    def test_returns_checkout_options(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id = create_order(auth_client)["order"]["id"]

        response = auth_client.post(f"/api/v1/checkout/orders/{order_id}/payment")
        data = response.json()

        assert response.status_code == 200
        assert data["order_id"] == order_id
        assert data["gateway_order"]["amount"] == 82000000
        assert data["key_id"] == "rzp_test_key123"
        assert data["is_test_mode"] is True
        assert data["checkout_options"]["order_id"] == data["gateway_order"]["id"]
        assert fake_razorpay.requests[0]["receipt"] == f"order_{order_id}"

    def test_other_users_order_not_found(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        other = fake_supabase.add_row(
            "orders", {"email": OTHER_EMAIL, "status": "pending", "payment": "unpaid", "total_amount": "10"}
        )

        response = auth_client.post(f"/api/v1/checkout/orders/{other['id']}/payment")

        assert response.status_code == 404
        assert fake_razorpay.requests == []

    @pytest.mark.parametrize("stored_status", ["On Hold", None])
    def test_unrecognized_order_status_is_conflict(
        self,
        auth_client: TestClient,
        wheat_cart: FakeSupabase,
        fake_razorpay: FakeRazorpay,
        stored_status: str | None,
    ) -> None:
        order_id = create_order(auth_client)["order"]["id"]
        wheat_cart.rows("orders")[0]["status"] = stored_status

        response = auth_client.post(f"/api/v1/checkout/orders/{order_id}/payment")

        assert response.status_code == 409
        assert response.json()["error"] == "checkout_state_error"
        assert fake_razorpay.requests == []

    def test_gateway_failure(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id = create_order(auth_client)["order"]["id"]
        fake_razorpay.status_code = 500

        response = auth_client.post(f"/api/v1/checkout/orders/{order_id}/payment")

        assert response.status_code == 502
        assert response.json()["error"] == "gateway_error"
        assert wheat_cart.rows("orders")[0]["status"] == "pending"

    def test_dismiss_keeps_order_pending(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id = create_order(auth_client)["order"]["id"]
        auth_client.post(f"/api/v1/checkout/orders/{order_id}/payment")

        response = auth_client.post(f"/api/v1/checkout/orders/{order_id}/payment/dismiss")

        assert response.status_code == 200
        assert response.json()["state"] == "order_created"
        assert "retry payment" in response.json()["message"]
        assert wheat_cart.rows("orders")[0]["status"] == "pending"


class TestCompletePayment:
    """Tests for POST /api/v1/checkout/orders/{id}/payment/complete."""

    def start(self, client: TestClient) -> tuple[int, str]:
        order_id = create_order(client)["order"]["id"]
        session = client.post(f"/api/v1/checkout/orders/{order_id}/payment").json()
        return order_id, session["gateway_order"]["id"]

    def test_confirms_order(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id, gateway_order_id = self.start(auth_client)

        response = auth_client.post(
            f"/api/v1/checkout/orders/{order_id}/payment/complete", json=callback(gateway_order_id)
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "state": "confirmed",
            "order_id": order_id,
            "redirect_url": f"/orders/{order_id}",
            "error": None,
        }
        order = auth_client.get(f"/api/v1/orders/{order_id}").json()
        assert order["status"] == "confirmed"
        assert order["payment"] == "paid"
        assert order["payments"][0]["razorpay_payment_id"] == "pay_1"
        assert wheat_cart.rows("cart") == []

    def test_forged_signature(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id, gateway_order_id = self.start(auth_client)

        response = auth_client.post(
            f"/api/v1/checkout/orders/{order_id}/payment/complete",
            json=callback(gateway_order_id, signature="0" * 64),
        )

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["state"] == "failed"
        assert response.json()["error"] == CONTACT_SUPPORT_MESSAGE
        assert wheat_cart.rows("orders")[0]["status"] == "pending"
        assert wheat_cart.rows("payments")[0]["status"] == "created"

    def test_repeat_callback_is_idempotent(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id, gateway_order_id = self.start(auth_client)
        url = f"/api/v1/checkout/orders/{order_id}/payment/complete"

        first = auth_client.post(url, json=callback(gateway_order_id))
        second = auth_client.post(url, json=callback(gateway_order_id))

        assert first.json()["success"] is True
        assert second.json()["success"] is True
        assert second.json()["order_id"] == order_id
        assert len(wheat_cart.rows("orders")) == 1

    def test_cannot_pay_cancelled_order(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id, gateway_order_id = self.start(auth_client)
        auth_client.post(f"/api/v1/orders/{order_id}/cancel")

        response = auth_client.post(
            f"/api/v1/checkout/orders/{order_id}/payment/complete", json=callback(gateway_order_id)
        )

        assert response.status_code == 409
        assert response.json()["error"] == "checkout_state_error"
        assert wheat_cart.rows("payments")[0]["status"] == "created"

    def test_missing_callback_fields(
        self, auth_client: TestClient, wheat_cart: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        order_id, gateway_order_id = self.start(auth_client)

        response = auth_client.post(
            f"/api/v1/checkout/orders/{order_id}/payment/complete",
            json={"razorpay_order_id": gateway_order_id},
        )

        assert response.status_code == 422
