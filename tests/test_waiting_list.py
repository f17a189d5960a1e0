"""
Tests for the walk-in waiting list.
"""

import pytest

from tests.conftest import create_restaurant


def join(client, restaurant_id: int, name: str, party_size: int = 2, phone: str = "555-987-6543"):
    return client.post(
        f"/api/waiting-list/{restaurant_id}",
        json={"customerName": name, "customerPhone": phone, "partySize": party_size},
    )


@pytest.fixture
def queue(client, seed) -> list[dict]:
    return [join(client, seed.restaurant_id, name).json()["entry"] for name in ("Ana", "Ben", "Cleo")]


class TestJoin:
    def test_positions_and_estimates(self, client, seed):
        first = join(client, seed.restaurant_id, "Ana")
        second = join(client, seed.restaurant_id, "Ben", party_size=4)

        assert first.status_code == 201
        assert first.json()["message"] == "You are number 1 in line"
        assert second.json()["message"] == "You are number 2 in line"
        entry = second.json()["entry"]
        assert entry["position"] == 2
        assert entry["estimatedWaitTime"] == 30
        assert entry["status"] == "waiting"

    def test_invalid_phone(self, client, seed):
        response = join(client, seed.restaurant_id, "Ana", phone="call me")
        assert response.status_code == 400

    def test_disabled(self, client, run_db):
        busy = run_db(lambda session: create_restaurant(
            session, name="No Queue", email_domain="noqueue.test", enable_waiting_list=False,
        ))

        response = join(client, busy.restaurant_id, "Ana")

        assert response.status_code == 400

    def test_unknown_restaurant(self, client):
        assert join(client, 999, "Ana").status_code == 404


class TestPosition:
    def test_position_moves_up(self, client, seed, queue, staff_headers):
        client.put(f"/api/waiting-list/entries/{queue[0]['id']}/status", json={"status": "seated"}, headers=staff_headers)

        response = client.get(f"/api/waiting-list/position/{queue[2]['id']}")

        assert response.json()["entry"]["position"] == 2

    def test_seated_party_has_no_position(self, client, seed, queue, staff_headers):
        response = client.put(
            f"/api/waiting-list/entries/{queue[0]['id']}/status",
            json={"status": "seated"},
            headers=staff_headers,
        )

        entry = response.json()["entry"]
        assert entry["position"] is None
        assert entry["seatedAt"] is not None

    def test_missing_entry(self, client):
        assert client.get("/api/waiting-list/position/404").status_code == 404


class TestStaffQueue:
    def test_list_in_arrival_order(self, client, seed, queue, staff_headers):
        response = client.get(f"/api/waiting-list/{seed.restaurant_id}", headers=staff_headers)

        data = response.json()
        assert data["count"] == 3
        assert [e["customerName"] for e in data["entries"]] == ["Ana", "Ben", "Cleo"]
        assert [e["position"] for e in data["entries"]] == [1, 2, 3]

    def test_other_tenant_cannot_list(self, client, seed, other_seed, other_admin_headers):
        response = client.get(f"/api/waiting-list/{seed.restaurant_id}", headers=other_admin_headers)
        assert response.status_code == 404

    def test_notify_texts_party(self, client, seed, queue, staff_headers, notifier):
        response = client.post(f"/api/waiting-list/entries/{queue[1]['id']}/notify", headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["entry"]["status"] == "notified"
        assert notifier.sms_to("555-987-6543") == [
            "Hi Ben, your table for 2 at Bella Vista is ready! Please come to the host stand."
        ]

        notified = client.get(f"/api/waiting-list/{seed.restaurant_id}?status=notified", headers=staff_headers)
        assert [e["customerName"] for e in notified.json()["entries"]] == ["Ben"]

    def test_cannot_notify_seated_party(self, client, seed, queue, staff_headers):
        client.put(f"/api/waiting-list/entries/{queue[0]['id']}/status", json={"status": "seated"}, headers=staff_headers)

        response = client.post(f"/api/waiting-list/entries/{queue[0]['id']}/notify", headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Entry is already seated"
