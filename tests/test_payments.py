"""
Tests for card payment intents, confirmation and refunds.
"""


class TestPaymentIntent:
    """Tests for POST /api/orders/{id}/payment-intent."""

    def test_create_intent(self, client, place_order):
        order = place_order()

        response = client.post(f"/api/orders/{order['id']}/payment-intent")

        assert response.status_code == 200
        data = response.json()
        assert data["paymentIntentId"].startswith("pi_mock_")
        assert data["clientSecret"]
        assert data["amount"] == 27.0
        assert data["currency"] == "usd"
        assert data["reused"] is False

        tracked = client.get(f"/api/orders/{order['id']}").json()["order"]
        assert tracked["paymentStatus"] == "processing"
        assert tracked["paymentIntentId"] == data["paymentIntentId"]

    def test_second_call_reuses_intent(self, client, place_order):
        """Retrying checkout returns the same intent instead of a new charge."""
        order = place_order()

        first = client.post(f"/api/orders/{order['id']}/payment-intent").json()
        second = client.post(f"/api/orders/{order['id']}/payment-intent").json()

        assert second["paymentIntentId"] == first["paymentIntentId"]
        assert second["reused"] is True

    def test_canceled_intent_is_replaced(self, client, place_order, payments):
        order = place_order()
        first = client.post(f"/api/orders/{order['id']}/payment-intent").json()
        payments.set_intent_status(first["paymentIntentId"], "canceled")

        response = client.post(f"/api/orders/{order['id']}/payment-intent")

        data = response.json()
        assert response.status_code == 200
        assert data["reused"] is False
        assert data["paymentIntentId"] != first["paymentIntentId"]
        tracked = client.get(f"/api/orders/{order['id']}").json()["order"]
        assert tracked["paymentIntentId"] == data["paymentIntentId"]

        replacement = payments._intents[data["paymentIntentId"]]
        assert replacement["metadata"]["replaces_intent"] == first["paymentIntentId"]

        confirmed = client.post(
            f"/api/orders/{order['id']}/confirm-payment",
            json={"paymentIntentId": data["paymentIntentId"]},
        )
        assert confirmed.json()["order"]["paymentStatus"] == "completed"

    def test_cash_order_rejected(self, client, place_order):
        order = place_order(paymentMethod="cash")

        response = client.post(f"/api/orders/{order['id']}/payment-intent")

        assert response.status_code == 400
        assert "cash" in response.json()["error"]

    def test_cancelled_order_rejected(self, client, place_order, staff_headers):
        order = place_order()
        client.put(f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=staff_headers)

        response = client.post(f"/api/orders/{order['id']}/payment-intent")

        assert response.status_code == 400

    def test_missing_order(self, client, seed):
        response = client.post("/api/orders/404/payment-intent")
        assert response.status_code == 404


class TestConfirmPayment:
    """Tests for POST /api/orders/{id}/confirm-payment."""

    def _intent(self, client, order_id: int) -> str:
        return client.post(f"/api/orders/{order_id}/payment-intent").json()["paymentIntentId"]

    def test_confirm_success(self, client, place_order, notifier):
        order = place_order()
        intent_id = self._intent(client, order["id"])

        response = client.post(
            f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id}
        )

        assert response.status_code == 200
        confirmed = response.json()["order"]
        assert confirmed["paymentStatus"] == "completed"
        assert confirmed["status"] == "confirmed"
        assert confirmed["confirmedAt"] is not None
        assert any("Payment of $27.00 received" in m for m in notifier.sms_to("555-123-4567"))

    def test_already_paid(self, client, place_order):
        """Confirming twice is harmless; a new intent is refused."""
        order = place_order()
        intent_id = self._intent(client, order["id"])
        client.post(f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id})

        again = client.post(f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id})
        assert again.status_code == 200
        assert again.json()["message"] == "Payment already confirmed"

        response = client.post(f"/api/orders/{order['id']}/payment-intent")
        assert response.status_code == 400
        assert response.json()["error"] == "Order is already paid"

    def test_mismatched_intent(self, client, place_order):
        order = place_order()
        self._intent(client, order["id"])

        response = client.post(
            f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": "pi_someone_else"}
        )

        assert response.status_code == 400
        assert client.get(f"/api/orders/{order['id']}").json()["order"]["paymentStatus"] == "processing"

    def test_unsuccessful_intent_marks_failed(self, client, place_order, payments):
        order = place_order()
        intent_id = self._intent(client, order["id"])
        payments.set_intent_status(intent_id, "requires_payment_method")

        response = client.post(
            f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id}
        )

        assert response.status_code == 400
        assert "requires_payment_method" in response.json()["error"]
        tracked = client.get(f"/api/orders/{order['id']}").json()["order"]
        assert tracked["paymentStatus"] == "failed"
        assert tracked["status"] == "pending"

    def test_failed_payment_can_be_retried(self, client, place_order, payments):
        order = place_order()
        intent_id = self._intent(client, order["id"])
        payments.set_intent_status(intent_id, "requires_payment_method")
        client.post(f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id})

        payments.set_intent_status(intent_id, "succeeded")
        response = client.post(
            f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id}
        )

        assert response.status_code == 200
        assert response.json()["order"]["paymentStatus"] == "completed"


class TestRefund:
    """Tests for POST /api/orders/{id}/refund."""

    def _paid_order(self, client, place_order) -> dict:
        order = place_order()
        intent_id = client.post(f"/api/orders/{order['id']}/payment-intent").json()["paymentIntentId"]
        client.post(f"/api/orders/{order['id']}/confirm-payment", json={"paymentIntentId": intent_id})
        return order

    def test_full_refund(self, client, place_order, admin_headers):
        order = self._paid_order(client, place_order)

        response = client.post(f"/api/orders/{order['id']}/refund", json={}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["refundId"].startswith("re_mock_")
        assert data["amount"] == 27.0
        assert data["order"]["paymentStatus"] == "refunded"

    def test_partial_refund(self, client, place_order, admin_headers):
        order = self._paid_order(client, place_order)

        response = client.post(
            f"/api/orders/{order['id']}/refund",
            json={"amount": 5.0, "reason": "requested_by_customer"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["amount"] == 5.0

    def test_refund_exceeding_total(self, client, place_order, admin_headers):
        order = self._paid_order(client, place_order)

        response = client.post(f"/api/orders/{order['id']}/refund", json={"amount": 100.0}, headers=admin_headers)

        assert response.status_code == 400

    def test_unpaid_order_cannot_be_refunded(self, client, place_order, admin_headers):
        order = place_order()

        response = client.post(f"/api/orders/{order['id']}/refund", json={}, headers=admin_headers)

        assert response.status_code == 400

    def test_staff_cannot_refund(self, client, place_order, staff_headers):
        order = self._paid_order(client, place_order)

        response = client.post(f"/api/orders/{order['id']}/refund", json={}, headers=staff_headers)

        assert response.status_code == 403
