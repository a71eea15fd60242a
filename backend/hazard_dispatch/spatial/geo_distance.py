"""
geo_distance.py — Great-circle distance between hazard and recipient.

Provides:
    - Coordinate value type (decimal degrees, range-checked)
    - Haversine distance in **metres**
    - Human-readable kilometre formatting for notification text

Mathematical Foundation — Haversine Formula
============================================
Given two points P₁(φ₁, λ₁) and P₂(φ₂, λ₂):

    a = sin²(Δφ / 2) + cos(φ₁) · cos(φ₂) · sin²(Δλ / 2)
    c = 2 · atan2(√a, √(1 − a))
    d = R · c

Where:
    φ  = latitude in radians
    λ  = longitude in radians
    R  = Earth's mean radius, 6 371 km
    c  = angular distance in radians
    d  = great-circle distance

The result is symmetric in its arguments and exactly zero for coincident
points. Antipodal and polar inputs need no special handling; the formula
covers them. Results are NOT rounded: the notify radius is an inclusive
boundary and rounding would move it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

EARTH_RADIUS_KM: float = 6_371.0
EARTH_RADIUS_M: float = EARTH_RADIUS_KM * 1000.0


# ---------------------------------------------------------------------------
# Core data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinate:
    """A geographic point in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValueError(
                f"Latitude must be in [-90, 90], got {self.latitude}"
            )
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValueError(
                f"Longitude must be in [-180, 180], got {self.longitude}"
            )

    @property
    def lat_rad(self) -> float:
        """Latitude in radians."""
        return math.radians(self.latitude)

    @property
    def lon_rad(self) -> float:
        """Longitude in radians."""
        return math.radians(self.longitude)

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


# ---------------------------------------------------------------------------
# Haversine implementation
# ---------------------------------------------------------------------------

def haversine_meters(point_a: Coordinate, point_b: Coordinate) -> float:
    """
    Compute the great-circle distance between two points.

    Parameters
    ----------
    point_a : Coordinate
        Origin point (e.g. hazard location).
    point_b : Coordinate
        Target point (e.g. recipient location).

    Returns
    -------
    float
        Distance in metres.

    Examples
    --------
    >>> haversine_meters(Coordinate(0, 0), Coordinate(0, 0))
    0.0
    >>> round(haversine_meters(Coordinate(37.0, -122.0), Coordinate(37.0001, -122.0001)))
    14
    """
    d_lat = point_b.lat_rad - point_a.lat_rad
    d_lon = point_b.lon_rad - point_a.lon_rad

    a = (
        math.sin(d_lat / 2.0) ** 2
        + math.cos(point_a.lat_rad)
        * math.cos(point_b.lat_rad)
        * math.sin(d_lon / 2.0) ** 2
    )

    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))

    return EARTH_RADIUS_M * c


# ---------------------------------------------------------------------------
# Utility: Human-readable distance
# ---------------------------------------------------------------------------

def format_distance_km(meters: float) -> str:
    """
    Format a distance in kilometres with one decimal place.

    >>> format_distance_km(14.2)
    '0.0'
    >>> format_distance_km(3_726.6)
    '3.7'
    """
    return f"{meters / 1000.0:.1f}"
