"""
Tests for the restaurant admin routes: profile, settings, reset, stats and tables.
"""

from sqlalchemy import select

from qrdine.models import RestaurantTable, TableStatus


def register_owner(client, email: str = "owner@newplace.test") -> dict[str, str]:
    response = client.post(
        "/api/auth/register",
        json={"name": "New Owner", "email": email, "password": "owner123", "role": "admin"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}


class TestCreateRestaurant:
    def test_create_with_tables(self, client):
        """Tables are created with QR codes pointing at the table page."""
        headers = register_owner(client)

        response = client.post(
            "/api/restaurants",
            json={
                "name": "Trattoria Nuova",
                "phone": "+15550002222",
                "settings": {"taxRate": 0.1},
                "tables": [{"tableNumber": "A1", "capacity": 2}, {"tableNumber": 2}],
            },
            headers=headers,
        )

        assert response.status_code == 201
        restaurant = response.json()["restaurant"]
        assert restaurant["settings"]["taxRate"] == 0.1
        assert restaurant["settings"]["currency"] == "usd"
        assert [t["tableNumber"] for t in restaurant["tables"]] == ["A1", "2"]

        table = restaurant["tables"][0]
        assert table["qrCode"].startswith("data:image/png;base64,")
        assert table["qrUrl"].endswith(f"/table/{restaurant['id']}/A1")

        me = client.get("/api/auth/me", headers=headers).json()
        assert me["user"]["restaurantId"] == restaurant["id"]

    def test_only_one_restaurant_per_admin(self, client, seed, admin_headers):
        response = client.post("/api/restaurants", json={"name": "Second Place"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "You already have a restaurant"

    def test_staff_cannot_create(self, client, seed, staff_headers):
        response = client.post("/api/restaurants", json={"name": "Staff Diner"}, headers=staff_headers)
        assert response.status_code == 403


class TestMyRestaurant:
    def test_get_my_restaurant(self, client, seed, admin_headers):
        response = client.get("/api/restaurants/my", headers=admin_headers)

        assert response.status_code == 200
        restaurant = response.json()["restaurant"]
        assert restaurant["id"] == seed.restaurant_id
        assert len(restaurant["tables"]) == 3

    def test_admin_without_restaurant(self, client):
        headers = register_owner(client)

        response = client.get("/api/restaurants/my", headers=headers)

        assert response.status_code == 404

    def test_update_profile(self, client, seed, admin_headers):
        response = client.put(
            "/api/restaurants/my",
            json={"description": "Family trattoria", "cuisine": "Italian"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        restaurant = response.json()["restaurant"]
        assert restaurant["description"] == "Family trattoria"
        assert restaurant["name"] == "Bella Vista"

    def test_update_settings_merges(self, client, seed, admin_headers):
        """Partial updates keep the other settings; hours merge per day."""
        response = client.put(
            "/api/restaurants/my/settings",
            json={
                "taxRate": 0.0925,
                "operatingHours": {"monday": {"open": "11:00", "close": "15:00", "closed": False}},
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        settings = response.json()["restaurant"]["settings"]
        assert settings["taxRate"] == 0.0925
        assert settings["enableOrderNotifications"] is True
        assert settings["operatingHours"]["monday"]["open"] == "11:00"
        assert settings["operatingHours"]["tuesday"]["open"] == "09:00"

    def test_invalid_tax_rate(self, client, seed, admin_headers):
        response = client.put("/api/restaurants/my/settings", json={"taxRate": 1.5}, headers=admin_headers)
        assert response.status_code == 400

    def test_new_tax_rate_applies_to_new_orders(self, client, seed, admin_headers, place_order):
        client.put("/api/restaurants/my/settings", json={"taxRate": 0.1}, headers=admin_headers)

        order = place_order()

        assert order["tax"] == 2.5
        assert order["total"] == 27.5


class TestStatsAndReset:
    def test_stats(self, client, seed, admin_headers, place_order):
        place_order()

        response = client.get("/api/restaurants/my/stats", headers=admin_headers)

        assert response.status_code == 200
        stats = response.json()["stats"]
        assert stats["todayOrders"] == 1
        assert stats["todayRevenue"] == 27.0
        assert stats["activeOrders"] == 1
        assert stats["tables"]["total"] == 3
        assert stats["tables"]["occupied"] == 1
        assert stats["menuItems"] == 5

    def test_reset_orders_frees_tables(self, client, seed, admin_headers, place_order, run_db):
        place_order()

        response = client.post("/api/restaurants/my/reset", json={"resetType": "orders"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["deleted"] == {"orders": 1}

        async def statuses(session):
            result = await session.execute(
                select(RestaurantTable.status).where(RestaurantTable.restaurant_id == seed.restaurant_id)
            )
            return set(result.scalars().all())

        assert run_db(statuses) == {TableStatus.AVAILABLE}

    def test_reset_is_tenant_scoped(self, client, seed, other_seed, other_admin_headers, place_order):
        order = place_order()

        client.post("/api/restaurants/my/reset", json={"resetType": "all"}, headers=other_admin_headers)

        assert client.get(f"/api/orders/{order['id']}").status_code == 200

    def test_invalid_reset_type(self, client, seed, admin_headers):
        response = client.post("/api/restaurants/my/reset", json={"resetType": "menu"}, headers=admin_headers)
        assert response.status_code == 400


class TestTables:
    def test_add_table(self, client, seed, admin_headers):
        response = client.post(
            "/api/restaurants/my/tables",
            json={"tableNumber": "Patio-1", "capacity": 6},
            headers=admin_headers,
        )

        assert response.status_code == 201
        table = response.json()["table"]
        assert table["tableNumber"] == "Patio-1"
        assert table["status"] == "available"
        assert table["qrCode"].startswith("data:image/png;base64,")

    def test_duplicate_table_number(self, client, seed, admin_headers):
        response = client.post("/api/restaurants/my/tables", json={"tableNumber": "1"}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Table 1 already exists"

    def test_renumber_regenerates_qr(self, client, seed, admin_headers):
        before = client.get("/api/restaurants/my/tables/3/qr", headers=admin_headers).json()

        response = client.put("/api/restaurants/my/tables/3", json={"tableNumber": "30"}, headers=admin_headers)

        assert response.status_code == 200
        table = response.json()["table"]
        assert table["qrUrl"].endswith("/30")
        assert table["qrUrl"] != before["qrUrl"]

    def test_mark_available_clears_order(self, client, seed, admin_headers, place_order):
        place_order()

        response = client.put("/api/restaurants/my/tables/1", json={"status": "available"}, headers=admin_headers)

        table = response.json()["table"]
        assert table["status"] == "available"
        assert table["currentPhase"] == "waiting"
        assert table["currentOrderId"] is None

    def test_cannot_delete_table_with_active_orders(self, client, seed, admin_headers, place_order):
        place_order()

        response = client.delete("/api/restaurants/my/tables/1", headers=admin_headers)

        assert response.status_code == 400

    def test_delete_table(self, client, seed, admin_headers):
        response = client.delete("/api/restaurants/my/tables/3", headers=admin_headers)

        assert response.status_code == 200
        tables = client.get("/api/restaurants/my", headers=admin_headers).json()["restaurant"]["tables"]
        assert [t["tableNumber"] for t in tables] == ["1", "2"]

    def test_missing_table(self, client, seed, admin_headers):
        response = client.get("/api/restaurants/my/tables/99/qr", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["error"] == "Table 99 not found"

    def test_generate_qr_codes(self, client, seed, admin_headers):
        response = client.post("/api/restaurants/my/generate-qr-codes", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Generated 3 QR codes"
        assert all(t["qrCode"] for t in response.json()["restaurant"]["tables"])
