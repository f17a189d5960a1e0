"""
Tests for public reviews and staff moderation.
"""

import pytest

from tests.conftest import create_restaurant


def write_review(client, restaurant_id: int, rating: int, **fields) -> dict:
    payload = {"customerName": "Jane", "rating": rating, "comment": f"{rating} stars", **fields}
    response = client.post(f"/api/reviews/{restaurant_id}", json=payload)
    assert response.status_code == 201, response.json()
    return response.json()


@pytest.fixture
def reviews(client, seed) -> list[dict]:
    return [write_review(client, seed.restaurant_id, rating)["review"] for rating in (5, 4, 5, 2)]


class TestPublicReviews:
    def test_create_review(self, client, seed, place_order):
        order = place_order()

        data = write_review(client, seed.restaurant_id, 5, orderId=order["id"], tableNumber=1, title="Superb")

        assert data["message"] == "Thank you for your review!"
        review = data["review"]
        assert review["status"] == "approved"
        assert review["tableNumber"] == "1"
        assert review["helpfulCount"] == 0
        assert "customerEmail" not in review

    def test_order_from_other_restaurant(self, client, seed, other_seed, place_order):
        order = place_order()

        response = client.post(
            f"/api/reviews/{other_seed.restaurant_id}",
            json={"customerName": "Jane", "rating": 4, "comment": "Nice", "orderId": order["id"]},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Order does not belong to this restaurant"

    def test_rating_out_of_range(self, client, seed):
        response = client.post(
            f"/api/reviews/{seed.restaurant_id}",
            json={"customerName": "Jane", "rating": 6, "comment": "Too good"},
        )
        assert response.status_code == 400

    def test_list_with_distribution(self, client, seed, reviews):
        response = client.get(f"/api/reviews/{seed.restaurant_id}")

        data = response.json()
        assert data["total"] == 4
        assert data["averageRating"] == 4.0
        assert data["ratingDistribution"] == {"1": 0, "2": 1, "3": 0, "4": 1, "5": 2}
        assert data["reviews"][0]["id"] == reviews[-1]["id"]

    def test_filter_sort_and_page(self, client, seed, reviews):
        rid = seed.restaurant_id

        five_stars = client.get(f"/api/reviews/{rid}?rating=5").json()
        lowest = client.get(f"/api/reviews/{rid}?sort=lowest").json()
        second_page = client.get(f"/api/reviews/{rid}?limit=3&page=2").json()

        assert five_stars["total"] == 2
        assert lowest["reviews"][0]["rating"] == 2
        assert second_page["pages"] == 2
        assert len(second_page["reviews"]) == 1

    def test_moderated_reviews_hidden_until_approved(self, client, run_db):
        strict = run_db(lambda session: create_restaurant(
            session, name="Strict Bistro", email_domain="strict.test", auto_approve_reviews=False,
        ))

        data = write_review(client, strict.restaurant_id, 3)

        assert data["message"] == "Thank you! Your review will appear after moderation."
        assert data["review"]["status"] == "pending"
        assert client.get(f"/api/reviews/{strict.restaurant_id}").json()["total"] == 0
        assert client.get(f"/api/reviews/{strict.restaurant_id}/{data['review']['id']}").status_code == 404

    def test_mark_helpful(self, client, seed, reviews):
        review_id = reviews[0]["id"]

        client.post(f"/api/reviews/{seed.restaurant_id}/{review_id}/helpful")
        response = client.post(f"/api/reviews/{seed.restaurant_id}/{review_id}/helpful")

        assert response.json()["review"]["helpfulCount"] == 2
        top = client.get(f"/api/reviews/{seed.restaurant_id}?sort=helpful").json()["reviews"][0]
        assert top["id"] == review_id

    def test_review_from_other_restaurant_not_found(self, client, seed, other_seed, reviews):
        response = client.get(f"/api/reviews/{other_seed.restaurant_id}/{reviews[0]['id']}")
        assert response.status_code == 404


class TestModeration:
    def test_queue_counts_by_status(self, client, seed, reviews, staff_headers):
        client.put(
            f"/api/reviews/{seed.restaurant_id}/{reviews[3]['id']}/status",
            json={"status": "rejected"},
            headers=staff_headers,
        )

        response = client.get(f"/api/reviews/{seed.restaurant_id}/moderation", headers=staff_headers)

        data = response.json()
        assert data["total"] == 4
        assert data["ratingDistribution"] == {"pending": 0, "approved": 3, "rejected": 1}
        assert client.get(f"/api/reviews/{seed.restaurant_id}").json()["total"] == 3

    def test_queue_requires_staff(self, client, seed):
        response = client.get(f"/api/reviews/{seed.restaurant_id}/moderation")
        assert response.status_code == 401

    def test_queue_other_tenant(self, client, seed, other_seed, other_admin_headers):
        response = client.get(f"/api/reviews/{seed.restaurant_id}/moderation", headers=other_admin_headers)
        assert response.status_code == 404

    def test_reply(self, client, seed, reviews, staff_headers):
        response = client.post(
            f"/api/reviews/{seed.restaurant_id}/{reviews[0]['id']}/responses",
            json={"message": "Thanks for visiting!"},
            headers=staff_headers,
        )

        assert response.status_code == 201
        replies = response.json()["review"]["responses"]
        assert replies[0]["responderName"] == "Kitchen Staff"
        assert replies[0]["message"] == "Thanks for visiting!"

    def test_delete(self, client, seed, reviews, admin_headers):
        response = client.delete(f"/api/reviews/{seed.restaurant_id}/{reviews[0]['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert client.get(f"/api/reviews/{seed.restaurant_id}").json()["total"] == 3
