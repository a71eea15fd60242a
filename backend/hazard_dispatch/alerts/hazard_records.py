"""
hazard_records.py — Raw store records → canonical HazardEvent.

Two record shapes have been seen in the wild:

    flat    {"latitude": 37.0, "longitude": -122.0, "type": ..., ...}
    nested  {"location": {"latitude": 37.0, "longitude": -122.0}, ...}
            (or a Firestore GeoPoint under "location")

The shape is a configuration choice (HAZARD_SCHEMA). Translation lives
here, at the edge; the filter and dispatch code only ever see HazardEvent.

Shape validation (are the coordinates present, finite and in range?) is
``validate_hazard_event``. The coordinator calls it and turns a failure
into a Rejected outcome.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping, Optional, Tuple

from backend.hazard_dispatch.alerts.models import HazardEvent
from backend.hazard_dispatch.core.config import settings
from backend.hazard_dispatch.core.errors import InvalidEventError

logger = logging.getLogger(__name__)

SCHEMA_FLAT = "flat"
SCHEMA_NESTED = "nested"
SCHEMAS = (SCHEMA_FLAT, SCHEMA_NESTED)


def _coerce_coordinate(value: Any) -> Optional[float]:
    """Return a float for numbers and numeric strings, None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _location_pair(location: Any) -> Tuple[Any, Any]:
    """Read (latitude, longitude) from a nested mapping or a GeoPoint-like object."""
    if location is None:
        return None, None
    if isinstance(location, Mapping):
        return location.get("latitude"), location.get("longitude")
    return getattr(location, "latitude", None), getattr(location, "longitude", None)


def extract_coordinates(
    record: Mapping[str, Any],
    schema: Optional[str] = None,
) -> Tuple[Optional[float], Optional[float]]:
    """
    Pull (latitude, longitude) out of a record.

    Parameters
    ----------
    record : mapping
        Raw document data.
    schema : "flat" | "nested" | None
        Which shape to read. None tries flat first, then nested.

    Returns
    -------
    (latitude, longitude)
        Either may be None if missing or not numeric.
    """
    if schema is not None and schema not in SCHEMAS:
        raise ValueError(f"Unknown record schema {schema!r}, expected one of {SCHEMAS}")

    flat = (record.get("latitude"), record.get("longitude"))
    nested = _location_pair(record.get("location"))

    if schema == SCHEMA_FLAT:
        raw = flat
    elif schema == SCHEMA_NESTED:
        raw = nested
    else:
        raw = flat if flat != (None, None) else nested

    return _coerce_coordinate(raw[0]), _coerce_coordinate(raw[1])


def hazard_from_record(
    hazard_id: str,
    record: Mapping[str, Any],
    *,
    schema: Optional[str] = None,
    default_type: Optional[str] = None,
    default_description: Optional[str] = None,
) -> HazardEvent:
    """
    Resolve a raw hazard document into a HazardEvent.

    Never raises for bad coordinates: they come through as None and the
    coordinator rejects the event.
    """
    schema = schema or settings.HAZARD_SCHEMA
    lat, lon = extract_coordinates(record, schema)

    hazard_type = record.get("type") or record.get("hazardType")
    description = record.get("description")

    return HazardEvent(
        hazard_id=str(hazard_id),
        latitude=lat,
        longitude=lon,
        hazard_type=str(hazard_type or default_type or settings.DEFAULT_HAZARD_TYPE),
        description=str(
            description or default_description or settings.DEFAULT_HAZARD_DESCRIPTION
        ),
    )


def validate_hazard_event(event: HazardEvent) -> None:
    """
    Check that a hazard can be located.

    Raises
    ------
    InvalidEventError
        If either coordinate is missing, not a real number, not finite,
        or out of range. Zero is a valid coordinate.
    """
    for name, value, limit in (
        ("latitude", event.latitude, 90.0),
        ("longitude", event.longitude, 180.0),
    ):
        if value is None:
            raise InvalidEventError(f"Hazard {event.hazard_id} has no {name}", field=name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidEventError(
                f"Hazard {event.hazard_id} {name} is not a number",
                field=name, value=repr(value),
            )
        try:
            as_float = float(value)
        except OverflowError as exc:
            raise InvalidEventError(
                f"Hazard {event.hazard_id} {name} out of range: too large",
                field=name,
            ) from exc
        if not math.isfinite(as_float) or not -limit <= as_float <= limit:
            raise InvalidEventError(
                f"Hazard {event.hazard_id} {name} out of range: {as_float}",
                field=name, value=as_float,
            )
