"""
Tests for table service requests and the staff queue.
"""

from tests.conftest import create_restaurant


def special_requests(seed, *items) -> dict:
    return {"restaurantId": seed.restaurant_id, "tableId": "2", "requests": list(items)}


class TestCustomerRequests:
    def test_special_requests_prioritized(self, client, seed):
        response = client.post(
            "/api/service/request",
            json=special_requests(
                seed,
                {"category": "Dietary", "title": "Gluten-free bread", "selectedOptions": ["toasted"]},
                {"category": "cutlery", "title": "Extra napkins"},
            ),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Special requests submitted successfully"
        first, second = data["requests"]
        assert first["priority"] == "high"
        assert first["type"] == "special_request"
        assert first["tableId"] == "2"
        assert first["details"] == {"selectedOptions": ["toasted"]}
        assert second["priority"] == "medium"

    def test_unknown_table(self, client, seed):
        payload = {**special_requests(seed, {"category": "cutlery", "title": "Fork"}), "tableId": "99"}

        response = client.post("/api/service/request", json=payload)

        assert response.status_code == 404

    def test_empty_request_list(self, client, seed):
        response = client.post("/api/service/request", json=special_requests(seed))
        assert response.status_code == 400

    def test_call_server(self, client, seed):
        response = client.post(
            "/api/service/call-server",
            json={"restaurantId": seed.restaurant_id, "tableId": 3, "reason": "bill"},
        )

        assert response.status_code == 201
        request = response.json()["requests"][0]
        assert request["title"] == "Server Assistance"
        assert request["priority"] == "urgent"
        assert request["details"]["message"] == "Customer needs assistance"

    def test_call_server_disabled(self, client, run_db):
        quiet = run_db(lambda session: create_restaurant(
            session, name="Self Service", email_domain="self.test", enable_server_call=False,
        ))

        response = client.post(
            "/api/service/call-server",
            json={"restaurantId": quiet.restaurant_id, "tableId": "1"},
        )

        assert response.status_code == 400

    def test_special_instructions_with_allergens(self, client, seed, place_order):
        order = place_order()

        response = client.post(
            "/api/service/special-instructions",
            json={
                "restaurantId": seed.restaurant_id,
                "tableId": "1",
                "instructions": "Severe peanut allergy at this table",
                "allergens": ["peanuts"],
                "orderId": order["id"],
            },
        )

        request = response.json()["requests"][0]
        assert request["priority"] == "high"
        assert request["category"] == "allergy"
        assert request["details"]["orderId"] == order["id"]

    def test_plural_alias(self, client, seed):
        response = client.post(
            "/api/services/special-instructions",
            json={"restaurantId": seed.restaurant_id, "tableId": "1", "instructions": "Window seat please"},
        )

        assert response.status_code == 201
        assert response.json()["requests"][0]["priority"] == "medium"


class TestStaffQueue:
    def _submit(self, client, seed):
        client.post(
            "/api/service/request",
            json=special_requests(seed, {"category": "allergy", "title": "Nut-free dessert"}),
        )
        client.post("/api/service/call-server", json={"restaurantId": seed.restaurant_id, "tableId": "1"})

    def test_list_and_filter(self, client, seed, staff_headers):
        self._submit(client, seed)
        rid = seed.restaurant_id

        everything = client.get(f"/api/service/requests/{rid}?status=all", headers=staff_headers).json()
        calls = client.get(f"/api/service/requests/{rid}?type=call_server", headers=staff_headers).json()

        assert len(everything["requests"]) == 2
        assert [r["title"] for r in calls["requests"]] == ["Server Assistance"]

    def test_invalid_status_filter(self, client, seed, staff_headers):
        response = client.get(f"/api/service/requests/{seed.restaurant_id}?status=lost", headers=staff_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid status 'lost'"

    def test_other_tenant_cannot_list(self, client, seed, other_seed, other_admin_headers):
        response = client.get(f"/api/service/requests/{seed.restaurant_id}", headers=other_admin_headers)
        assert response.status_code == 404

    def test_assign_and_complete(self, client, seed, staff_headers):
        self._submit(client, seed)
        request_id = client.get(
            f"/api/service/requests/{seed.restaurant_id}", headers=staff_headers
        ).json()["requests"][0]["id"]

        response = client.put(
            f"/api/service/requests/{request_id}",
            json={"status": "completed", "assignedTo": seed.staff.id, "staffNotes": "Done"},
            headers=staff_headers,
        )

        assert response.status_code == 200
        request = response.json()["requests"][0]
        assert request["status"] == "completed"
        assert request["completedAt"] is not None
        assert request["assignedTo"] == seed.staff.id

    def test_assignee_must_belong_to_restaurant(self, client, seed, other_seed, staff_headers):
        self._submit(client, seed)
        request_id = client.get(
            f"/api/service/requests/{seed.restaurant_id}", headers=staff_headers
        ).json()["requests"][0]["id"]

        response = client.put(
            f"/api/service/requests/{request_id}",
            json={"assignedTo": other_seed.staff.id},
            headers=staff_headers,
        )

        assert response.status_code == 400

    def test_stats(self, client, seed, staff_headers):
        self._submit(client, seed)

        response = client.get(f"/api/service/stats/{seed.restaurant_id}", headers=staff_headers)

        data = response.json()
        assert data["total"] == 2
        assert data["byStatus"]["pending"] == 2
        assert data["byType"] == {"special_request": 1, "call_server": 1, "special_instructions": 0}
        assert data["openHighPriority"] == 2
