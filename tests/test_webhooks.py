"""
Tests for the Stripe webhook endpoint.
"""

import json
import time

import pytest

from qrdine.services.payment import sign_webhook_payload


def post_event(client, event: dict, secret: str = "whsec_test", signature: str = None):
    body = json.dumps(event).encode("utf-8")
    header = signature if signature is not None else sign_webhook_payload(body, secret)
    return client.post(
        "/api/webhooks/stripe",
        content=body,
        headers={"Stripe-Signature": header, "Content-Type": "application/json"},
    )


def intent_event(event_type: str, intent_id: str, order_id=None) -> dict:
    metadata = {"order_id": str(order_id)} if order_id is not None else {}
    return {
        "id": "evt_test",
        "type": event_type,
        "data": {"object": {"id": intent_id, "metadata": metadata}},
    }


class TestStripeWebhook:
    def _order_with_intent(self, client, place_order) -> tuple[dict, str]:
        order = place_order()
        intent_id = client.post(f"/api/orders/{order['id']}/payment-intent").json()["paymentIntentId"]
        return order, intent_id

    def test_payment_succeeded(self, client, place_order, notifier):
        order, intent_id = self._order_with_intent(client, place_order)

        response = post_event(client, intent_event("payment_intent.succeeded", intent_id, order["id"]))

        assert response.status_code == 200
        assert response.json() == {"received": True}
        tracked = client.get(f"/api/orders/{order['id']}").json()["order"]
        assert tracked["paymentStatus"] == "completed"
        assert tracked["status"] == "confirmed"
        assert any("Payment of" in m for m in notifier.sms_to("555-123-4567"))

    def test_lookup_by_intent_id(self, client, place_order):
        """Events without order metadata are matched on the stored intent id."""
        order, intent_id = self._order_with_intent(client, place_order)

        post_event(client, intent_event("payment_intent.succeeded", intent_id))

        assert client.get(f"/api/orders/{order['id']}").json()["order"]["paymentStatus"] == "completed"

    def test_duplicate_success_notifies_once(self, client, place_order, notifier):
        order, intent_id = self._order_with_intent(client, place_order)
        event = intent_event("payment_intent.succeeded", intent_id, order["id"])

        post_event(client, event)
        post_event(client, event)

        payments = [m for m in notifier.sms_to("555-123-4567") if "Payment of" in m]
        assert len(payments) == 1

    def test_payment_failed(self, client, place_order):
        order, intent_id = self._order_with_intent(client, place_order)

        post_event(client, intent_event("payment_intent.payment_failed", intent_id, order["id"]))

        assert client.get(f"/api/orders/{order['id']}").json()["order"]["paymentStatus"] == "failed"

    def test_charge_refunded(self, client, place_order):
        order, intent_id = self._order_with_intent(client, place_order)
        post_event(client, intent_event("payment_intent.succeeded", intent_id, order["id"]))

        event = {
            "id": "evt_refund",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_test", "payment_intent": intent_id, "metadata": {}}},
        }
        post_event(client, event)

        assert client.get(f"/api/orders/{order['id']}").json()["order"]["paymentStatus"] == "refunded"

    def test_bad_signature_rejected_without_changes(self, client, place_order):
        order, intent_id = self._order_with_intent(client, place_order)

        response = post_event(
            client,
            intent_event("payment_intent.succeeded", intent_id, order["id"]),
            secret="whsec_wrong",
        )

        assert response.status_code == 400
        assert "Webhook Error" in response.json()["error"]
        assert client.get(f"/api/orders/{order['id']}").json()["order"]["paymentStatus"] == "processing"

    def test_missing_signature_rejected(self, client, place_order):
        order, intent_id = self._order_with_intent(client, place_order)

        response = post_event(client, intent_event("payment_intent.succeeded", intent_id, order["id"]), signature="")

        assert response.status_code == 400

    def test_stale_signature_rejected(self, client, place_order):
        order, intent_id = self._order_with_intent(client, place_order)
        event = intent_event("payment_intent.succeeded", intent_id, order["id"])
        body = json.dumps(event).encode("utf-8")

        response = post_event(
            client, event, signature=sign_webhook_payload(body, "whsec_test", int(time.time()) - 3600)
        )

        assert response.status_code == 400

    def test_unknown_order_acknowledged(self, client, seed):
        response = post_event(client, intent_event("payment_intent.succeeded", "pi_unknown", 9999))
        assert response.status_code == 200

    def test_unhandled_event_acknowledged(self, client, seed):
        response = post_event(client, {"id": "evt_x", "type": "customer.created", "data": {"object": {}}})
        assert response.status_code == 200
        assert response.json() == {"received": True}

    @pytest.mark.parametrize("body", [b"[]", b'"payment_intent.succeeded"', b"\xff\xfe\x00"])
    def test_signed_body_that_is_not_an_event(self, client, seed, body):
        response = client.post(
            "/api/webhooks/stripe",
            content=body,
            headers={"Stripe-Signature": sign_webhook_payload(body, "whsec_test")},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Webhook Error: Payload is not a JSON event object"
