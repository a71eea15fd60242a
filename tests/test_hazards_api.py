"""
test_hazards_api.py — HTTP trigger endpoint tests.

Runs the FastAPI app in-process with TestClient. The lifespan wires the
default (simulation + in-memory) coordinator; tests swap in their own
coordinator on app.state.
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from backend.hazard_dispatch.alerts.batch_dispatcher import BatchDispatcher
from backend.hazard_dispatch.alerts.candidate_source import InMemoryCandidateSource
from backend.hazard_dispatch.alerts.channels.simulated_push import SimulatedPushTransport
from backend.hazard_dispatch.alerts.dispatch_service import DispatchCoordinator
from backend.hazard_dispatch.alerts.models import Recipient
from backend.hazard_dispatch.core.logging_config import PrettyFormatter
from backend.hazard_dispatch.core.middleware import hazard_id_from_path
from backend.hazard_dispatch.main import app
from backend.hazard_dispatch.spatial.geo_distance import Coordinate


@pytest.fixture
def transport():
    return SimulatedPushTransport(failing_tokens={"T-bad"})


@pytest.fixture
def client(transport):
    source = InMemoryCandidateSource(
        responders=[Recipient.responder("responder-1", "T1")],
        users=[
            Recipient.user("user-near", "T2", Coordinate(37.0001, -122.0001)),
            Recipient.user("user-far", "T3", Coordinate(40.0, -125.0)),
        ],
    )
    with TestClient(app) as test_client:
        app.state.coordinator = DispatchCoordinator(source, BatchDispatcher(transport))
        yield test_client


class TestNotifyEndpoint:

    def test_dispatches_flat_record(self, client, transport):
        resp = client.post(
            "/api/v1/hazards/hz-1/notify",
            json={"latitude": 37.0, "longitude": -122.0, "type": "Pothole"},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"] == "dispatched"
        assert body["success"] is True
        assert body["total_sent"] == 2
        assert body["total_failed"] == 0
        assert body["nearby_count"] == 2
        assert {m["notification"]["title"] for m in transport.sent} == {
            "Pothole Detected", "Pothole Nearby",
        }

    def test_missing_longitude_rejected_not_error(self, client, transport):
        resp = client.post("/api/v1/hazards/hz-2/notify", json={"latitude": 37.0})
        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"] == "rejected"
        assert body["success"] is False
        assert list(transport.sent) == []

    def test_garbage_coordinates_rejected(self, client):
        resp = client.post(
            "/api/v1/hazards/hz-3/notify", json={"latitude": "north", "longitude": -122.0},
        )
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "rejected"

    def test_oversized_integer_latitude_rejected(self, client, transport):
        resp = client.post(
            "/api/v1/hazards/hz-big/notify",
            json={"latitude": 10**400, "longitude": -122.0},
        )
        assert resp.status_code == 200
        assert resp.json()["outcome"] == "rejected"
        assert list(transport.sent) == []

    def test_extra_fields_ignored(self, client):
        resp = client.post(
            "/api/v1/hazards/hz-4/notify",
            json={"latitude": 37.0, "longitude": -122.0, "reportedBy": "cam-7", "confidence": 0.9},
        )
        assert resp.json()["outcome"] == "dispatched"

    def test_request_id_header(self, client):
        resp = client.post(
            "/api/v1/hazards/hz-5/notify",
            json={"latitude": 37.0, "longitude": -122.0},
            headers={"X-Request-ID": "abc123"},
        )
        assert resp.headers["X-Request-ID"] == "abc123"
        assert "X-Process-Time" in resp.headers

    def test_uninitialised_coordinator_503(self, client):
        app.state.coordinator = None
        resp = client.post("/api/v1/hazards/hz-6/notify", json={"latitude": 1, "longitude": 2})
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


class TestConfigAndHealth:

    def test_config(self, client):
        body = client.get("/api/v1/hazards/config").json()
        assert body["radius_meters"] == 5000.0
        assert body["transport"] == "simulation"

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness(self, client):
        resp = client.get("/health/ready")
        assert resp.status_code == 200
        names = [c["name"] for c in resp.json()["components"]]
        assert names == ["dispatcher", "candidate_source"]

    def test_readiness_without_coordinator(self, client):
        app.state.coordinator = None
        assert client.get("/health/ready").status_code == 503


class TestRequestTagging:

    @pytest.mark.parametrize("path, expected", [
        ("/api/v1/hazards/hz-1/notify", "hz-1"),
        ("/api/v1/hazards/hz-1/notify/", "hz-1"),
        ("/api/v1/hazards/config", None),
        ("/health/ready", None),
    ])
    def test_hazard_id_from_path(self, path, expected):
        assert hazard_id_from_path(path) == expected

    def test_request_log_line_carries_hazard(self, client, caplog):
        caplog.handler.setFormatter(PrettyFormatter())
        with caplog.at_level(logging.INFO):
            client.post("/api/v1/hazards/hz-tag/notify", json={"latitude": 37.0, "longitude": -122.0})
        request_lines = [
            line for line in caplog.text.splitlines()
            if "POST /api/v1/hazards/hz-tag/notify" in line
        ]
        assert request_lines
        assert "[hazard=hz-tag]" in request_lines[-1]
