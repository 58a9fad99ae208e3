"""Tests for the REST surface under /api."""

from __future__ import annotations

from fastapi import status
from fastapi.testclient import TestClient


EXCHANGE = {
    "code": "xetr",
    "name": "Xetra",
    "country": "Germany",
    "timezone": "Europe/Berlin",
    "currency": "eur",
}


class TestUsersApi:
    """Tests for /api/users."""

    def test_create_returns_201_envelope(self, client: TestClient):
        response = client.post("/api/users", json={"email": "rest@example.com", "name": "Rest"})
        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["success"] is True
        assert body["data"]["email"] == "rest@example.com"

    def test_duplicate_email_is_409(self, client: TestClient):
        client.post("/api/users", json={"email": "dup@example.com"})
        response = client.post("/api/users", json={"email": "dup@example.com"})
        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "CONFLICT"

    def test_invalid_body_is_400(self, client: TestClient):
        response = client.post("/api/users", json={"email": "nope"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["error"] == "VALIDATION_ERROR"

    def test_get_update_delete(self, client: TestClient):
        user_id = client.post("/api/users", json={"email": "crud@example.com"}).json()["data"]["id"]

        assert client.get(f"/api/users/{user_id}").json()["data"]["id"] == user_id

        updated = client.put(f"/api/users/{user_id}", json={"name": "Crud"})
        assert updated.json()["data"]["name"] == "Crud"

        by_email = client.get("/api/users/email/crud@example.com")
        assert by_email.json()["data"]["id"] == user_id

        deleted = client.delete(f"/api/users/{user_id}")
        assert deleted.status_code == status.HTTP_200_OK
        assert deleted.json() == {"success": True, "data": None, "message": "User deleted successfully"}

        assert client.get(f"/api/users/{user_id}").status_code == status.HTTP_404_NOT_FOUND

    def test_list_paginated(self, client: TestClient):
        for i in range(3):
            client.post("/api/users", json={"email": f"u{i}@example.com"})

        data = client.get("/api/users", params={"limit": 2}).json()["data"]
        assert len(data["users"]) == 2
        assert data["total"] == 3
        assert data["has_more"] is True

    def test_malformed_id_is_400(self, client: TestClient):
        response = client.get("/api/users/not-an-id")
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_portfolio(self, client: TestClient):
        user_id = client.post("/api/users", json={"email": "p@example.com"}).json()["data"]["id"]
        data = client.get(f"/api/users/{user_id}/portfolio").json()["data"]
        assert data["summary"]["total_open_positions"] == 0


class TestExchangesApi:
    """Tests for /api/exchanges."""

    def test_create_normalizes_codes(self, client: TestClient):
        response = client.post("/api/exchanges", json=EXCHANGE)
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["code"] == "XETR"
        assert data["currency"] == "EUR"

    def test_get_by_code_and_stats(self, client: TestClient):
        exchange_id = client.post("/api/exchanges", json=EXCHANGE).json()["data"]["id"]

        assert client.get("/api/exchanges/code/xetr").json()["data"]["id"] == exchange_id

        stats = client.get(f"/api/exchanges/{exchange_id}/stats").json()["data"]
        assert stats["total_stocks"] == 0
        assert stats["top_stocks"] == []

    def test_list_filters_by_currency(self, client: TestClient):
        client.post("/api/exchanges", json=EXCHANGE)
        data = client.get("/api/exchanges", params={"currency": "USD"}).json()["data"]
        assert data == []

    def test_update_and_delete(self, client: TestClient):
        exchange_id = client.post("/api/exchanges", json=EXCHANGE).json()["data"]["id"]

        updated = client.put(f"/api/exchanges/{exchange_id}", json={"is_active": False})
        assert updated.json()["data"]["is_active"] is False

        assert client.delete(f"/api/exchanges/{exchange_id}").status_code == status.HTTP_200_OK
        assert client.get(f"/api/exchanges/{exchange_id}").status_code == status.HTTP_404_NOT_FOUND


class TestFallback:
    """Unknown routes."""

    def test_unknown_route_lists_available_routes(self, client: TestClient):
        response = client.get("/does/not/exist")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Not Found"
        assert body["availableRoutes"] == ["/api", "/health", "/rpc"]
