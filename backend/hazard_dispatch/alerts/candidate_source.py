"""
candidate_source.py — Who could be notified about a hazard.

Contract
--------
A candidate source exposes two independent enumerations:

    list_responders() → List[Recipient]   role = RESPONDER
    list_users()      → List[Recipient]   role = USER

Each call returns the complete current snapshot. The dispatcher does not
page, retry or deduplicate: an identity present in both sets is evaluated
once per set, under that set's rule.

Directory record fields
-----------------------
    fcmToken (or pushToken)           optional push token
    latitude / longitude              flat location, or
    location: {latitude, longitude}   nested location

A location that is missing, non-numeric or out of range is treated as
absent and logged.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Protocol

from backend.hazard_dispatch.alerts.hazard_records import extract_coordinates
from backend.hazard_dispatch.alerts.models import Recipient, RecipientRole
from backend.hazard_dispatch.core.errors import CandidateSourceError
from backend.hazard_dispatch.spatial.geo_distance import Coordinate

logger = logging.getLogger(__name__)


class CandidateSource(Protocol):
    """Snapshot provider for the two recipient enumerations."""

    def list_responders(self) -> List[Recipient]:
        ...

    def list_users(self) -> List[Recipient]:
        ...


def recipient_from_record(
    recipient_id: str,
    record: Mapping[str, Any],
    role: RecipientRole,
) -> Recipient:
    """Translate one directory document into a Recipient."""
    token = record.get("fcmToken") or record.get("pushToken") or None

    location: Optional[Coordinate] = None
    lat, lon = extract_coordinates(record)
    if lat is not None and lon is not None:
        try:
            location = Coordinate(lat, lon)
        except ValueError as exc:
            logger.warning("Ignoring location of %s: %s", recipient_id, exc)

    return Recipient(
        recipient_id=str(recipient_id),
        role=role,
        push_token=str(token) if token else None,
        location=location,
    )


class InMemoryCandidateSource:
    """Fixed candidate lists, for development and tests."""

    name = "memory"

    def __init__(
        self,
        responders: Optional[Iterable[Recipient]] = None,
        users: Optional[Iterable[Recipient]] = None,
    ) -> None:
        self._responders = list(responders or [])
        self._users = list(users or [])

    def list_responders(self) -> List[Recipient]:
        return list(self._responders)

    def list_users(self) -> List[Recipient]:
        return list(self._users)


class FirestoreCandidateSource:
    """
    Candidate source backed by two Firestore collections.

    Parameters
    ----------
    client : google.cloud.firestore.Client
        Usually ``firebase_admin.firestore.client(app)``.
    responders_collection, users_collection : str
        Collection names.
    """

    name = "firestore"

    def __init__(
        self,
        client: Any,
        *,
        responders_collection: str = "responders",
        users_collection: str = "users",
    ) -> None:
        self._client = client
        self._responders_collection = responders_collection
        self._users_collection = users_collection

    def _load(self, collection: str, role: RecipientRole) -> List[Recipient]:
        try:
            docs = list(self._client.collection(collection).stream())
        except Exception as exc:
            raise CandidateSourceError(
                self.name, f"reading '{collection}': {exc}", collection=collection,
            ) from exc

        recipients = [
            recipient_from_record(doc.id, doc.to_dict() or {}, role)
            for doc in docs
        ]
        logger.info("Loaded %d %ss from '%s'", len(recipients), role.value, collection)
        return recipients

    def list_responders(self) -> List[Recipient]:
        return self._load(self._responders_collection, RecipientRole.RESPONDER)

    def list_users(self) -> List[Recipient]:
        return self._load(self._users_collection, RecipientRole.USER)
