# tests/integration/test_pricing_api.py
"""Integration tests for the pricing endpoints through the full ASGI app."""

import pytest


class TestQuote:
    async def test_empty_market(self, client):
        resp = await client.post("/api/v1/pricing/quote", json={"yes_shares": 0, "no_shares": 0})
        assert resp.status_code == 200
        body = resp.json()
        assert body["code"] == 0
        assert body["data"] == {"yes_price": 0.5, "no_price": 0.5}

    async def test_request_id_is_echoed(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"yes_shares": 10, "no_shares": 0},
            headers={"X-Request-ID": "req_fixed"},
        )
        assert resp.headers["X-Request-ID"] == "req_fixed"
        assert resp.json()["request_id"] == "req_fixed"

    async def test_negative_shares_is_invalid_argument(self, client):
        resp = await client.post("/api/v1/pricing/quote", json={"yes_shares": -1, "no_shares": 0})
        assert resp.status_code == 422
        body = resp.json()
        assert body["code"] == 1001
        assert body["kind"] == "InvalidArgument"

    async def test_zero_liquidity_is_invalid_argument(self, client):
        resp = await client.post(
            "/api/v1/pricing/quote", json={"yes_shares": 1, "no_shares": 1, "liquidity_param": 0}
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == 1001


class TestCost:
    async def test_cost_and_quote_after(self, client):
        resp = await client.post(
            "/api/v1/pricing/cost",
            json={"yes_shares": 0, "no_shares": 0, "amount": 10, "buy_yes": True, "liquidity_param": 100},
        )
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["cost"] == pytest.approx(5.124948, rel=1e-5)
        assert data["quote_after"]["yes_price"] > 0.5

    async def test_missing_field_is_validation_error(self, client):
        resp = await client.post("/api/v1/pricing/cost", json={"yes_shares": 0, "no_shares": 0})
        assert resp.status_code == 422


class TestPayout:
    async def test_winning_position(self, client):
        resp = await client.post("/api/v1/pricing/payout", json={"shares": 7, "won": True})
        assert resp.status_code == 200
        assert resp.json()["data"] == {"payout": 7.0}


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
