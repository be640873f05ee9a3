"""API route tests using FastAPI's TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from parkalot.aggregation import AggregationQuery
from parkalot.api.router import init_router, router
from parkalot.inference.locator import ImageLocator
from parkalot.scheduler import UpdateLoop

from conftest import FakeAdapter, detection


@pytest.fixture
def client(fake_store, step_clock):
    locator = ImageLocator("images", "test-images", use_test_images=True, exists=lambda p: p.name == "lot-1.jpg")
    adapter = FakeAdapter({"lot-1.jpg": [detection("empty", 0.9), detection("empty", 0.7)]})
    loop = UpdateLoop(fake_store, locator, adapter, clock=step_clock)
    init_router(fake_store, loop, AggregationQuery(fake_store), refresh_running=lambda: True)

    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    return TestClient(app)


class TestParkingLots:
    """Record listing"""

    def test_list(self, client):
        resp = client.get("/api/v1/parking-lots")

        assert resp.status_code == 200
        body = resp.json()
        assert [lot["id"] for lot in body] == ["1", "2A", "B7"]
        assert body[0]["total_spaces"] == 20
        assert body[0]["name"] == "1 Main St"

    def test_single(self, client):
        resp = client.get("/api/v1/parking-lots/B7")

        assert resp.status_code == 200
        assert resp.json()["available"] == 5

    def test_single_not_found(self, client):
        assert client.get("/api/v1/parking-lots/nope").status_code == 404

    def test_store_down(self, client, fake_store):
        fake_store.fail_find_all = True

        assert client.get("/api/v1/parking-lots").status_code == 503


class TestAvailableParking:
    """Distance-ranked lookups"""

    def test_merge(self, client):
        resp = client.post(
            "/api/v1/available-parking",
            json=[
                {"locationId": "B7", "distance": {"text": "0.3 mi", "value": 480}},
                {"locationId": "ghost", "distance": {"text": "0.5 mi", "value": 800}},
                {"locationId": "1", "distance": {"text": "1 mi", "value": 1600}},
            ],
        )

        assert resp.status_code == 200
        body = resp.json()
        assert [r["id"] for r in body["results"]] == ["B7", "1"]
        assert body["results"][0]["distance"] == {"text": "0.3 mi", "value": 480.0}
        assert body["dropped"] == 1
        assert body["degraded"] is False

    def test_store_down_returns_empty(self, client, fake_store):
        fake_store.fail_find_by_ids = True

        resp = client.post(
            "/api/v1/available-parking",
            json=[{"locationId": "1", "distance": {"text": "1 mi", "value": 1600}}],
        )

        assert resp.status_code == 200
        assert resp.json()["results"] == []
        assert resp.json()["degraded"] is True

    def test_empty_body(self, client):
        resp = client.post("/api/v1/available-parking", json=[])

        assert resp.status_code == 200
        assert resp.json()["results"] == []

    def test_invalid_entry(self, client):
        resp = client.post("/api/v1/available-parking", json=[{"distance": {"text": "1 mi", "value": 1}}])

        assert resp.status_code == 422


class TestRefreshAndHealth:
    """Manual refresh, health and metrics"""

    def test_refresh(self, client, fake_store):
        resp = client.post("/api/v1/refresh")

        assert resp.status_code == 200
        body = resp.json()
        assert body["ran"] is True
        assert body["updated"] == {"1": 2}
        assert body["skipped"] == {"2A": "image_not_found", "B7": "image_not_found"}
        assert fake_store.records["1"].available == 2

    def test_health(self, client):
        client.post("/api/v1/refresh")

        body = client.get("/api/v1/health").json()

        assert body["status"] == "healthy"
        assert body["store_connected"] is True
        assert body["refresh_running"] is True
        assert body["cycle_in_progress"] is False
        assert body["last_cycle_at"] is not None

    def test_metrics(self, client):
        client.post("/api/v1/refresh")

        resp = client.get("/api/v1/metrics")

        assert resp.status_code == 200
        assert "parkalot_location_updates_total" in resp.text
