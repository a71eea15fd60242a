"""
test_geo_distance.py — Great-circle distance tests.

Run:
    pytest backend/tests/test_geo_distance.py -v

Covers:
    1. Coordinate range checks
    2. Haversine against known distances
    3. Symmetry and zero distance
    4. Monotonic growth with angular separation
    5. Kilometre formatting
"""

from __future__ import annotations

import math

import pytest

from backend.hazard_dispatch.spatial.geo_distance import (
    EARTH_RADIUS_M,
    Coordinate,
    format_distance_km,
    haversine_meters,
)

HAZARD = Coordinate(37.0, -122.0)

PAIRS = [
    (Coordinate(37.0, -122.0), Coordinate(37.0001, -122.0001)),
    (Coordinate(37.0, -122.0), Coordinate(40.0, -125.0)),
    (Coordinate(13.0827, 80.2707), Coordinate(12.9716, 77.5946)),
    (Coordinate(40.7128, -74.0060), Coordinate(51.5074, -0.1278)),
    (Coordinate(89.9, 0.0), Coordinate(-89.9, 180.0)),
    (Coordinate(0.0, 179.9), Coordinate(0.0, -179.9)),
]


class TestCoordinate:

    @pytest.mark.parametrize("lat, lon", [(90.0, 180.0), (-90.0, -180.0), (0.0, 0.0)])
    def test_edges_accepted(self, lat, lon):
        Coordinate(lat, lon)

    @pytest.mark.parametrize("lat, lon", [(90.01, 0.0), (-91.0, 0.0), (0.0, 180.5), (0.0, -200.0)])
    def test_out_of_range_rejected(self, lat, lon):
        with pytest.raises(ValueError):
            Coordinate(lat, lon)

    def test_as_tuple(self):
        assert HAZARD.as_tuple() == (37.0, -122.0)


class TestHaversine:

    def test_zero_for_same_point(self):
        assert haversine_meters(HAZARD, HAZARD) == 0.0

    @pytest.mark.parametrize("a, b", PAIRS)
    def test_symmetric(self, a, b):
        assert haversine_meters(a, b) == haversine_meters(b, a)

    def test_short_hop(self):
        # 0.0001° in both axes at 37°N ≈ 14 m
        assert 13.5 < haversine_meters(HAZARD, Coordinate(37.0001, -122.0001)) < 14.5

    def test_one_degree_latitude(self):
        d = haversine_meters(Coordinate(0.0, 0.0), Coordinate(1.0, 0.0))
        assert abs(d - EARTH_RADIUS_M * math.radians(1.0)) < 1e-6

    def test_chennai_bangalore(self):
        d = haversine_meters(Coordinate(13.0827, 80.2707), Coordinate(12.9716, 77.5946))
        assert 289_000 < d < 291_000

    def test_antipodal_is_half_circumference(self):
        d = haversine_meters(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
        assert abs(d - math.pi * EARTH_RADIUS_M) < 1e-3

    def test_across_antimeridian_is_short(self):
        d = haversine_meters(Coordinate(0.0, 179.9), Coordinate(0.0, -179.9))
        assert d < 25_000

    def test_grows_with_separation(self):
        distances = [
            haversine_meters(HAZARD, Coordinate(37.0 + step, -122.0))
            for step in (0.001, 0.01, 0.1, 1.0, 10.0)
        ]
        assert distances == sorted(distances)


class TestFormatDistanceKm:

    @pytest.mark.parametrize("meters, expected", [
        (0.0, "0.0"),
        (14.2, "0.0"),
        (1_200.9, "1.2"),
        (4_999.0, "5.0"),
        (430_000.0, "430.0"),
    ])
    def test_one_decimal(self, meters, expected):
        assert format_distance_km(meters) == expected
