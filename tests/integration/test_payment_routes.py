"""Integration tests for payment API endpoints."""

from typing import Any
from unittest.mock import patch

from fastapi.testclient import TestClient

from src.api.middleware.error_handler import CONTACT_SUPPORT_MESSAGE
from tests.fakes import RAZORPAY_SECRET, TEST_EMAIL, FakeRazorpay, FakeSupabase, compute_payment_signature

STOREFRONT_NOTES = {
    "firstName": "Asha",
    "lastName": "Rao",
    "companyName": "Rao Exports",
    "email": TEST_EMAIL,
    "phone": "+91 98765 43210",
    "iecTaxId": "IEC0001",
    "shippingAddress": "Dock 4, JNPT",
    "city": "Mumbai",
    "country": "India",
    "incoterms": "CIF",
    "items": [{"product": {"id": "wheat", "name": "Wheat", "price": 35000, "unit": "MT"}, "quantity": 20}],
    "shippingCost": "5000",
}


def verify_body(razorpay_order_id: str, payment_id: str = "pay_1", **extra: Any) -> dict[str, Any]:
    return {
        "razorpay_order_id": razorpay_order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": compute_payment_signature(razorpay_order_id, payment_id, RAZORPAY_SECRET),
        **extra,
    }


def create_gateway_order(client: TestClient, amount: int = 705000) -> str:
    response = client.post(
        "/api/v1/payments/razorpay/orders",
        json={"amount": amount, "currency": "INR", "receipt": "cart_checkout", "notes": STOREFRONT_NOTES},
    )
    assert response.status_code == 200
    return response.json()["order"]["id"]


class TestCreateRazorpayOrder:
    """Tests for POST /api/v1/payments/razorpay/orders."""

    def test_creates_order_and_payment(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        response = auth_client.post(
            "/api/v1/payments/razorpay/orders",
            json={"amount": "1500.50", "currency": "inr", "notes": STOREFRONT_NOTES},
        )
        data = response.json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["key_id"] == "rzp_test_key123"
        assert data["order"]["amount"] == 150050
        assert data["order"]["currency"] == "INR"
        payment = fake_supabase.rows("payments")[0]
        assert payment["status"] == "created"
        assert payment["user_email"] == TEST_EMAIL
        assert payment["notes"]["firstName"] == "Asha"

    def test_non_positive_amount(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        response = auth_client.post("/api/v1/payments/razorpay/orders", json={"amount": 0})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Valid amount is required"}
        assert fake_razorpay.requests == []

    def test_gateway_rejects_order(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        fake_razorpay.status_code = 400

        response = auth_client.post("/api/v1/payments/razorpay/orders", json={"amount": 100})

        assert response.status_code == 502
        assert response.json()["success"] is False
        assert fake_supabase.rows("payments") == []

    def test_gateway_not_configured(self, auth_client: TestClient, fake_supabase: FakeSupabase) -> None:
        unconfigured = FakeRazorpay().client(key_id="", key_secret="")
        with patch("src.services.gateway_service.get_razorpay_client", return_value=unconfigured):
            response = auth_client.post("/api/v1/payments/razorpay/orders", json={"amount": 100})

        assert response.status_code == 503
        assert response.json() == {"success": False, "error": "Payment gateway is not configured"}

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.post("/api/v1/payments/razorpay/orders", json={"amount": 100})

        assert response.status_code == 401


class TestVerifyRazorpayPayment:
    """Tests for POST /api/v1/payments/razorpay/verify."""

    def test_missing_fields(self, auth_client: TestClient, fake_supabase: FakeSupabase) -> None:
        response = auth_client.post("/api/v1/payments/razorpay/verify", json={"razorpay_order_id": "order_rzp1"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing payment verification fields"}

    def test_invalid_signature(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        gateway_order_id = create_gateway_order(auth_client)
        body = {**verify_body(gateway_order_id), "razorpay_signature": "f" * 64}

        response = auth_client.post("/api/v1/payments/razorpay/verify", json=body)

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Invalid payment signature"}
        assert fake_supabase.rows("payments")[0]["status"] == "created"
        assert fake_supabase.rows("orders") == []

    def test_rebuilds_order_from_notes(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        gateway_order_id = create_gateway_order(auth_client)

        response = auth_client.post("/api/v1/payments/razorpay/verify", json=verify_body(gateway_order_id))
        data = response.json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["message"] == "Payment verified successfully"
        order = fake_supabase.rows("orders")[0]
        assert data["order_id"] == order["id"]
        assert (order["status"], order["payment"]) == ("confirmed", "paid")
        assert order["company"] == "Rao Exports"
        assert fake_supabase.rows("payments")[0]["razorpay_payment_id"] == "pay_1"

    def test_duplicate_verify(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        gateway_order_id = create_gateway_order(auth_client)

        first = auth_client.post("/api/v1/payments/razorpay/verify", json=verify_body(gateway_order_id))
        second = auth_client.post("/api/v1/payments/razorpay/verify", json=verify_body(gateway_order_id))

        assert second.status_code == 200
        assert second.json()["message"] == "Payment already verified"
        assert second.json()["order_id"] == first.json()["order_id"]
        assert len(fake_supabase.rows("orders")) == 1

    def test_amount_mismatch_asks_customer_to_contact_support(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        gateway_order_id = create_gateway_order(auth_client, amount=100)

        response = auth_client.post("/api/v1/payments/razorpay/verify", json=verify_body(gateway_order_id))

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": CONTACT_SUPPORT_MESSAGE}
        assert fake_supabase.rows("orders") == []

    def test_unknown_gateway_order(self, auth_client: TestClient, fake_supabase: FakeSupabase) -> None:
        response = auth_client.post("/api/v1/payments/razorpay/verify", json=verify_body("order_missing"))

        assert response.status_code == 404
        assert response.json()["error"] == CONTACT_SUPPORT_MESSAGE


class TestListPayments:
    """Tests for GET /api/v1/payments."""

    def test_lists_own_payments(
        self, auth_client: TestClient, fake_supabase: FakeSupabase, fake_razorpay: FakeRazorpay
    ) -> None:
        gateway_order_id = create_gateway_order(auth_client)
        fake_supabase.add_row(
            "payments",
            {
                "user_email": "someone.else@example.com",
                "razorpay_order_id": "order_other",
                "amount": "10",
                "currency": "INR",
                "status": "created",
            },
        )

        response = auth_client.get("/api/v1/payments")
        items = response.json()["items"]

        assert response.status_code == 200
        assert [p["razorpay_order_id"] for p in items] == [gateway_order_id]
        assert items[0]["status"] == "created"

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/v1/payments").status_code == 401
