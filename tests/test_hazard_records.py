"""
test_hazard_records.py — Tests for the edges of the pipeline: raw hazard
documents, recipient directory records and candidate sources.

Covers:
    • extract_coordinates (flat, nested, auto-detect, coercion)
    • hazard_from_record (fallback labels, bad coordinates → None)
    • validate_hazard_event
    • recipient_from_record (token fields, location shapes, bad locations)
    • InMemoryCandidateSource / FirestoreCandidateSource
"""

from __future__ import annotations

import pytest
from google.cloud.firestore import GeoPoint
from unittest.mock import MagicMock

from backend.hazard_dispatch.alerts.candidate_source import (
    FirestoreCandidateSource,
    InMemoryCandidateSource,
    recipient_from_record,
)
from backend.hazard_dispatch.alerts.hazard_records import (
    extract_coordinates,
    hazard_from_record,
    validate_hazard_event,
)
from backend.hazard_dispatch.alerts.models import HazardEvent, Recipient, RecipientRole
from backend.hazard_dispatch.core.errors import CandidateSourceError, InvalidEventError
from backend.hazard_dispatch.spatial.geo_distance import Coordinate


def _make_doc(doc_id: str, data: dict) -> MagicMock:
    doc = MagicMock()
    doc.id = doc_id
    doc.to_dict.return_value = data
    return doc


def _make_firestore(collections: dict) -> MagicMock:
    client = MagicMock()

    def collection(name):
        ref = MagicMock()
        ref.stream.return_value = iter(
            _make_doc(doc_id, data) for doc_id, data in collections.get(name, {}).items()
        )
        return ref

    client.collection.side_effect = collection
    return client


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Coordinate extraction
# ═══════════════════════════════════════════════════════════════════════════

class TestExtractCoordinates:

    def test_flat(self):
        assert extract_coordinates({"latitude": 37.0, "longitude": -122.0}, "flat") == (37.0, -122.0)

    def test_nested(self):
        record = {"location": {"latitude": 37.0, "longitude": -122.0}}
        assert extract_coordinates(record, "nested") == (37.0, -122.0)

    def test_schema_is_strict(self):
        record = {"location": {"latitude": 37.0, "longitude": -122.0}}
        assert extract_coordinates(record, "flat") == (None, None)

    def test_auto_falls_back_to_nested(self):
        record = {"location": {"latitude": 1, "longitude": 2}}
        assert extract_coordinates(record) == (1.0, 2.0)

    def test_numeric_strings_coerced(self):
        assert extract_coordinates({"latitude": " 37.5", "longitude": "-122"}) == (37.5, -122.0)

    @pytest.mark.parametrize("bad", ["north", True, [1, 2], {"a": 1}])
    def test_non_numeric_becomes_none(self, bad):
        assert extract_coordinates({"latitude": bad, "longitude": 1.0}) == (None, 1.0)

    def test_huge_integer_becomes_none(self):
        assert extract_coordinates({"latitude": 10**400, "longitude": 1.0}) == (None, 1.0)

    def test_nested_geopoint(self):
        record = {"location": GeoPoint(10.0, 20.0)}
        assert extract_coordinates(record, "nested") == (10.0, 20.0)

    def test_unknown_schema(self):
        with pytest.raises(ValueError):
            extract_coordinates({}, "geojson")


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Hazard records
# ═══════════════════════════════════════════════════════════════════════════

class TestHazardFromRecord:

    def test_full_record(self):
        event = hazard_from_record(
            "hz-9",
            {"latitude": 37.0, "longitude": -122.0, "type": "Debris", "description": "Tyre on road"},
            schema="flat",
        )
        assert event == HazardEvent("hz-9", 37.0, -122.0, "Debris", "Tyre on road")

    def test_fallback_labels(self):
        event = hazard_from_record("hz-1", {"latitude": 1.0, "longitude": 2.0}, schema="flat")
        assert event.hazard_type == "Road Hazard"
        assert event.description == "Hazard detected nearby"

    def test_custom_defaults(self):
        event = hazard_from_record(
            "hz-1", {"latitude": 1.0, "longitude": 2.0},
            schema="flat", default_type="Flood", default_description="Water on road",
        )
        assert (event.hazard_type, event.description) == ("Flood", "Water on road")

    def test_missing_longitude_kept_as_none(self):
        event = hazard_from_record("hz-2", {"latitude": 37.0}, schema="flat")
        assert event.longitude is None

    def test_nested_schema(self):
        record = {"location": {"latitude": 10.0, "longitude": 20.0}}
        event = hazard_from_record("hz-3", record, schema="nested")
        assert event.location == Coordinate(10.0, 20.0)


class TestValidateHazardEvent:

    def test_valid(self):
        validate_hazard_event(HazardEvent("h", 37.0, -122.0))

    def test_zero_is_valid(self):
        validate_hazard_event(HazardEvent("h", 0.0, 0.0))

    def test_missing_reports_field(self):
        with pytest.raises(InvalidEventError) as exc_info:
            validate_hazard_event(HazardEvent("h", 37.0, None))
        assert exc_info.value.details["field"] == "longitude"
        assert exc_info.value.error_code == "INVALID_EVENT"

    def test_out_of_range(self):
        with pytest.raises(InvalidEventError):
            validate_hazard_event(HazardEvent("h", -90.5, 0.0))

    def test_huge_integer_rejected(self):
        with pytest.raises(InvalidEventError) as exc_info:
            validate_hazard_event(HazardEvent("h", 10**400, 0.0))
        assert exc_info.value.details["field"] == "latitude"


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Directory records
# ═══════════════════════════════════════════════════════════════════════════

class TestRecipientFromRecord:

    def test_fcm_token_and_flat_location(self):
        r = recipient_from_record("u1", {"fcmToken": "T2", "latitude": 37.0, "longitude": -122.0},
                                  RecipientRole.USER)
        assert r == Recipient.user("u1", "T2", Coordinate(37.0, -122.0))

    def test_push_token_fallback(self):
        r = recipient_from_record("r1", {"pushToken": "T1"}, RecipientRole.RESPONDER)
        assert r.push_token == "T1"
        assert r.location is None

    def test_empty_token_is_none(self):
        r = recipient_from_record("u1", {"fcmToken": ""}, RecipientRole.USER)
        assert r.push_token is None

    def test_nested_location(self):
        r = recipient_from_record(
            "u1", {"fcmToken": "T", "location": {"latitude": 1.0, "longitude": 2.0}},
            RecipientRole.USER,
        )
        assert r.location == Coordinate(1.0, 2.0)

    def test_out_of_range_location_dropped(self):
        r = recipient_from_record(
            "u1", {"fcmToken": "T", "latitude": 123.0, "longitude": 2.0}, RecipientRole.USER,
        )
        assert r.location is None

    def test_half_location_dropped(self):
        r = recipient_from_record("u1", {"fcmToken": "T", "latitude": 1.0}, RecipientRole.USER)
        assert r.location is None

    def test_huge_integer_location_dropped(self):
        r = recipient_from_record(
            "u1", {"fcmToken": "T", "latitude": 10**400, "longitude": 1.0}, RecipientRole.USER,
        )
        assert r.push_token == "T"
        assert r.location is None

    def test_geopoint_location(self):
        r = recipient_from_record(
            "u1", {"fcmToken": "T", "location": GeoPoint(37.0001, -122.0001)}, RecipientRole.USER,
        )
        assert r.location == Coordinate(37.0001, -122.0001)


# ═══════════════════════════════════════════════════════════════════════════
# Section 4: Candidate sources
# ═══════════════════════════════════════════════════════════════════════════

class TestInMemoryCandidateSource:

    def test_returns_copies(self):
        source = InMemoryCandidateSource([Recipient.responder("R1", "T1")], [])
        source.list_responders().clear()
        assert len(source.list_responders()) == 1
        assert source.list_users() == []


class TestFirestoreCandidateSource:

    def test_reads_both_collections(self):
        client = _make_firestore({
            "responders": {"r1": {"fcmToken": "T1"}},
            "users": {
                "u1": {"fcmToken": "T2", "latitude": 37.0001, "longitude": -122.0001},
                "u2": {"latitude": 40.0, "longitude": -125.0},
            },
        })
        source = FirestoreCandidateSource(client)

        responders = source.list_responders()
        users = source.list_users()

        assert [r.recipient_id for r in responders] == ["r1"]
        assert responders[0].role == RecipientRole.RESPONDER
        assert [u.recipient_id for u in users] == ["u1", "u2"]
        assert users[1].push_token is None

    def test_custom_collection_names(self):
        client = _make_firestore({"crew": {"c1": {"fcmToken": "T"}}})
        source = FirestoreCandidateSource(client, responders_collection="crew")
        assert len(source.list_responders()) == 1
        client.collection.assert_called_with("crew")

    def test_empty_document(self):
        client = _make_firestore({"users": {"u1": None}})
        users = FirestoreCandidateSource(client).list_users()
        assert users[0].push_token is None

    def test_errors_wrapped(self):
        client = MagicMock()
        client.collection.return_value.stream.side_effect = RuntimeError("permission denied")
        with pytest.raises(CandidateSourceError) as exc_info:
            FirestoreCandidateSource(client).list_users()
        assert "permission denied" in exc_info.value.message
        assert exc_info.value.details["collection"] == "users"
