"""
Tests for registration, login and the profile endpoints.
"""

import jwt

from qrdine.core.config import get_settings
from qrdine.core.security import decode_access_token


class TestRegister:
    def test_register_customer(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Ana Diner", "email": "Ana@Example.com", "password": "secret1"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["user"]["email"] == "ana@example.com"
        assert data["user"]["role"] == "customer"
        assert "passwordHash" not in data["user"]

        claims = decode_access_token(data["token"])
        assert claims["sub"] == str(data["user"]["id"])
        assert claims["role"] == "customer"

    def test_duplicate_email(self, client, seed):
        response = client.post(
            "/api/auth/register",
            json={"name": "Copy Cat", "email": "admin@bellavista.test", "password": "secret1"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "User already exists with this email"

    def test_cannot_self_register_superadmin(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Sneaky", "email": "root@example.com", "password": "secret1", "role": "superadmin"},
        )
        assert response.status_code == 400

    def test_short_password(self, client):
        response = client.post(
            "/api/auth/register",
            json={"name": "Ana Diner", "email": "ana@example.com", "password": "123"},
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("password")


class TestLogin:
    def test_login_success(self, client, seed):
        response = client.post("/api/auth/login", json={"email": "admin@bellavista.test", "password": "admin123"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Login successful"
        assert data["user"]["role"] == "admin"
        assert data["user"]["lastLogin"] is not None
        assert data["restaurant"]["id"] == seed.restaurant_id

        claims = decode_access_token(data["token"])
        assert claims["restaurant_id"] == seed.restaurant_id

    def test_wrong_password(self, client, seed):
        response = client.post("/api/auth/login", json={"email": "admin@bellavista.test", "password": "nope"})

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid credentials"

    def test_unknown_email(self, client, seed):
        response = client.post("/api/auth/login", json={"email": "ghost@bellavista.test", "password": "admin123"})
        assert response.status_code == 401

    def test_deactivated_account(self, client, seed, superadmin_headers):
        client.put(
            f"/api/superadmin/users/{seed.staff.id}",
            json={"isActive": False},
            headers=superadmin_headers,
        )

        response = client.post("/api/auth/login", json={"email": "kitchen@bellavista.test", "password": "kitchen123"})

        assert response.status_code == 401
        assert response.json()["error"] == "Account is deactivated"


class TestTokens:
    def test_me(self, client, seed, staff_headers):
        response = client.get("/api/auth/me", headers=staff_headers)

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "kitchen@bellavista.test"
        assert response.json()["restaurant"]["name"] == "Bella Vista"

    def test_missing_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["error"] == "Access denied. No token provided."

    def test_garbage_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_token_signed_with_other_secret(self, client, seed):
        token = jwt.encode({"sub": str(seed.admin.id), "role": "admin"}, "another-secret", algorithm="HS256")

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_expired_token(self, client, seed):
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(seed.admin.id), "role": "admin", "exp": 1},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["error"] == "Token has expired"

    def test_update_profile(self, client, seed, staff_headers):
        response = client.put(
            "/api/auth/me",
            json={"name": "Head Chef", "password": "new-secret"},
            headers=staff_headers,
        )
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Head Chef"

        login = client.post("/api/auth/login", json={"email": "kitchen@bellavista.test", "password": "new-secret"})
        assert login.status_code == 200
