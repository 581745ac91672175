"""Tests for API: GET /map (deep link), filters, location, recenter, health."""

import pytest

from fastapi.testclient import TestClient

import api.main as main_module
from core.models import incident_from_dict
from sync.session import MapSession
from tests.conftest import make_record


@pytest.fixture
def client():
    """TestClient over a fresh, unconnected session (lifespan not entered)."""
    main_module.session = MapSession()
    main_module.session.store.seed([
        incident_from_dict(make_record("A", severity="HIGH", latitude=0.0, longitude=0.05)),
        incident_from_dict(make_record("B", severity="LOW", incidentType="FLOOD", latitude=0.0, longitude=0.1)),
        incident_from_dict(make_record("C", severity="MEDIUM", latitude=None, longitude=None)),
    ])
    return TestClient(main_module.app)


class TestHealth:
    def test_health_returns_ok(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert data["live"] is False
        assert data["incidents"] == 3


class TestMap:
    def test_map_returns_mappable_markers(self, client):
        r = client.get("/map")
        assert r.status_code == 200
        data = r.json()
        assert [i["id"] for i in data["incidents"]] == ["A", "B"]
        assert data["total"] == 3
        assert data["matched"] == 3
        assert data["viewport"]["mode"] == "fit"
        assert data["status"] == "CONNECTING..."
        assert r.headers["Cache-Control"].startswith("no-store")

    def test_deep_link_highlight(self, client):
        data = client.get("/map", params={"highlight": "B"}).json()
        assert data["highlight"] == "B"
        assert data["highlight_state"] == "RESOLVED"
        assert data["viewport"]["mode"] == "highlight"
        assert data["viewport"]["zoom"] == 16
        assert data["viewport"]["center"] == {"lat": 0.0, "lng": 0.1}

    def test_unknown_highlight_stays_pending(self, client):
        data = client.get("/map", params={"highlight": "nope"}).json()
        assert data["highlight_state"] == "PENDING"
        assert data["viewport"]["mode"] == "fit"


class TestFilters:
    def test_severity_filter(self, client):
        r = client.put("/map/filters", json={"radius": 50, "severity": ["HIGH"], "type": "ALL"})
        assert r.status_code == 200
        assert [i["id"] for i in r.json()["incidents"]] == ["A"]

    def test_type_filter(self, client):
        data = client.put("/map/filters", json={"type": "FLOOD"}).json()
        assert [i["id"] for i in data["incidents"]] == ["B"]
        assert data["filters"]["type"] == "FLOOD"

    def test_empty_severity_rejected(self, client):
        assert client.put("/map/filters", json={"severity": []}).status_code == 422

    def test_radius_out_of_range_rejected(self, client):
        assert client.put("/map/filters", json={"radius": 0}).status_code == 422
        assert client.put("/map/filters", json={"radius": 51}).status_code == 422

    def test_unknown_type_rejected(self, client):
        assert client.put("/map/filters", json={"type": "ALIENS"}).status_code == 422


class TestLocationAndRecenter:
    def test_location_applies_radius(self, client):
        client.put("/map/filters", json={"radius": 10})
        data = client.post("/map/location", json={"lat": 0.0, "lng": 0.0}).json()
        # A is ~5.6km away, B ~11.1km; C has no coordinates and is never a marker
        assert [i["id"] for i in data["incidents"]] == ["A"]
        assert data["user_location"] == {"lat": 0.0, "lng": 0.0}

    def test_clear_location(self, client):
        client.post("/map/location", json={"lat": 0.0, "lng": 0.0})
        data = client.delete("/map/location").json()
        assert data["user_location"] is None

    def test_invalid_location_rejected(self, client):
        assert client.post("/map/location", json={"lat": 100, "lng": 0}).status_code == 422

    def test_manual_view_held_until_recenter(self, client):
        data = client.post("/map/view", json={"lat": 12.5, "lng": 77.5, "zoom": 11}).json()
        assert data["viewport"]["mode"] == "manual"
        assert data["viewport"]["zoom"] == 11
        assert data["viewport"]["center"] == {"lat": 12.5, "lng": 77.5}
        assert client.get("/map").json()["viewport"]["mode"] == "manual"
        assert client.post("/map/recenter").json()["viewport"]["mode"] == "fit"

    def test_manual_view_zoom_out_of_range_rejected(self, client):
        assert client.post("/map/view", json={"lat": 0, "lng": 0, "zoom": 25}).status_code == 422

    def test_recenter_clears_highlight_focus(self, client):
        client.get("/map", params={"highlight": "B"})
        data = client.post("/map/recenter").json()
        assert data["viewport"]["mode"] == "fit"
        # same deep link again does not re-issue the highlight camera command
        data = client.get("/map", params={"highlight": "B"}).json()
        assert data["viewport"]["mode"] == "fit"


class TestGetIncident:
    def test_found_without_coordinates(self, client):
        r = client.get("/map/incidents/C")
        assert r.status_code == 200
        assert r.json()["latitude"] is None

    def test_404(self, client):
        assert client.get("/map/incidents/missing").status_code == 404
