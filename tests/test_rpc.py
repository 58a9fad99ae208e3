"""Tests for the RPC transport and procedure registry."""

from __future__ import annotations

import json

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from piggy.api import rpc


def _query(client: TestClient, name: str, data: dict | None = None):
    params = {"input": json.dumps(data)} if data is not None else None
    return client.get(f"/rpc/{name}", params=params)


def _seed(client: TestClient) -> dict[str, str]:
    user = client.post("/rpc/user.create", json={"email": "rpc@example.com", "name": "Rpc"})
    exchange = client.post(
        "/rpc/exchange.create",
        json={"code": "NYSE", "name": "NYSE", "country": "US", "timezone": "America/New_York", "currency": "USD"},
    )
    stock = client.post(
        "/rpc/stock.create",
        json={"symbol": "ko", "name": "Coca-Cola", "exchange_id": exchange.json()["result"]["data"]["id"]},
    )
    return {
        "user_id": user.json()["result"]["data"]["id"],
        "stock_id": stock.json()["result"]["data"]["id"],
    }


class TestRegistry:
    """Procedure registration."""

    def test_known_procedures_registered(self):
        names = {p["name"] for p in rpc.list_procedures()}
        assert {"position.create", "position.close", "watchlist.bulkAdd", "user.getStats"} <= names

    def test_kind_determines_method(self):
        assert rpc.get_procedure("position.close").method == "POST"
        assert rpc.get_procedure("position.getById").method == "GET"

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError):
            rpc.query("position.getById")(lambda db, data: None)

    def test_bad_query_json(self):
        from piggy.core.exceptions import ValidationError

        with pytest.raises(ValidationError):
            rpc.decode_query_input("{not json")


class TestTransport:
    """HTTP behaviour of /rpc."""

    def test_list_procedures(self, client: TestClient):
        response = client.get("/rpc")
        assert response.status_code == status.HTTP_200_OK
        entries = {p["name"]: p for p in response.json()["procedures"]}
        assert entries["stock.list"] == {"name": "stock.list", "type": "query", "method": "GET"}

    def test_unknown_procedure_is_404(self, client: TestClient):
        response = client.get("/rpc/position.nope")
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "NOT_FOUND"

    def test_mutation_over_get_is_405(self, client: TestClient):
        response = client.get("/rpc/user.create")
        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_query_over_post_is_405(self, client: TestClient):
        response = client.post("/rpc/user.list", json={})
        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    def test_invalid_input_is_400_with_fields(self, client: TestClient):
        response = client.post("/rpc/user.create", json={"email": "nope"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"]["errors"][0]["field"] == "email"

    def test_malformed_id_is_400(self, client: TestClient):
        response = _query(client, "position.getById", {"id": "not-an-id"})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_malformed_body_is_400(self, client: TestClient):
        response = client.post(
            "/rpc/user.create", content=b"{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_query_without_input(self, client: TestClient):
        response = client.get("/rpc/user.list")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["result"]["data"]["users"] == []


class TestPositionRoundTrip:
    """Open and close a position over RPC."""

    def test_open_close_flow(self, client: TestClient):
        ids = _seed(client)

        opened = client.post(
            "/rpc/position.create",
            json={
                **ids,
                "open_date": "2024-01-15T10:00:00",
                "entry_price": 100,
                "quantity": 10,
                "buy_fees": 5,
                "open_reason": "Breakout",
            },
        )
        assert opened.status_code == status.HTTP_200_OK
        position_id = opened.json()["result"]["data"]["id"]

        close_body = {
            "position_id": position_id,
            "close_date": "2024-02-01T15:30:00",
            "exit_price": 120,
            "sell_fees": 3,
        }
        closed = client.post("/rpc/position.close", json=close_body)
        assert closed.status_code == status.HTTP_200_OK
        data = closed.json()["result"]["data"]
        assert data["realized_pnl"] == pytest.approx(192)
        assert data["return_percentage"] == pytest.approx(19.10, abs=0.01)

        again = client.post("/rpc/position.close", json=close_body)
        assert again.status_code == status.HTTP_409_CONFLICT
        assert again.json()["error"] == "INVALID_STATE"

        fetched = _query(client, "position.getById", {"id": position_id})
        assert fetched.json()["result"]["data"]["status"] == "CLOSED"

        ledger = _query(client, "transaction.getByPosition", {"position_id": position_id})
        assert [t["type"] for t in ledger.json()["result"]["data"]] == ["BUY", "SELL"]

    def test_missing_position_is_404(self, client: TestClient):
        response = _query(client, "position.getById", {"id": "c" + "0" * 32})
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_watchlist_duplicate_is_409(self, client: TestClient):
        ids = _seed(client)

        first = client.post("/rpc/watchlist.add", json=ids)
        second = client.post("/rpc/watchlist.add", json=ids)

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_409_CONFLICT
        watched = _query(client, "watchlist.isWatched", ids)
        assert watched.json()["result"]["data"]["is_watched"] is True
