"""
models.py — Shared data structures for hazard notification dispatch.

Defines:
    • HazardEvent         — the immutable input (one per new hazard record)
    • RecipientRole       — responder vs. location-aware user
    • Recipient           — a candidate with push token and optional location
    • EligibilityDecision — notify / skip verdict for one candidate
    • PlatformHints       — priority / sound / channel for the push platforms
    • NotificationPayload — transport-ready message for one recipient
    • DeliveryResult      — per-item outcome of a batch send
    • BatchResult         — all per-item outcomes + aggregate counts
    • DispatchSummary     — the single output of one dispatch run

═══════════════════════════════════════════════════════════════════════════
LIFETIME
═══════════════════════════════════════════════════════════════════════════

    HazardEvent, Recipient       immutable inputs, never mutated
    EligibilityDecision          computed fresh per dispatch, never stored
    NotificationPayload          built once, consumed by the transport
    DeliveryResult, BatchResult  produced by one batch send
    DispatchSummary              returned to the trigger, not stored here

No object here is shared between two dispatch runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from backend.hazard_dispatch.spatial.geo_distance import Coordinate


# ═══════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════

class RecipientRole(str, Enum):
    """Which notification rule applies to a candidate."""
    RESPONDER = "responder"   # notified regardless of distance
    USER      = "user"        # notified only within the radius


class SkipReason(str, Enum):
    """Why a candidate was not notified."""
    NO_PUSH_TOKEN = "no_push_token"
    NO_LOCATION   = "no_location"
    OUT_OF_RADIUS = "out_of_radius"


class DeliveryStatus(str, Enum):
    """Per-item delivery state reported by the transport."""
    DELIVERED = "delivered"
    FAILED    = "failed"


class DispatchOutcome(str, Enum):
    """Terminal state of one dispatch run."""
    REJECTED   = "rejected"     # invalid event, nothing enumerated
    EMPTY      = "empty"        # nobody eligible, transport not called
    DISPATCHED = "dispatched"   # one batch sent
    FAILED     = "failed"       # unexpected error caught at the boundary


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════════
# Inputs
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class HazardEvent:
    """
    A newly created hazard record, already resolved from its raw shape.

    Coordinates are optional here so that a malformed record can still be
    represented and rejected by the coordinator without raising.

    Attributes
    ----------
    hazard_id : str
        Opaque identifier of the hazard record.
    latitude, longitude : float | None
        Hazard location in decimal degrees. Both required for dispatch.
    hazard_type : str
        Short label, e.g. "Pothole". Falls back to "Road Hazard".
    description : str
        Free text shown as the notification body.
    """
    hazard_id: str
    latitude: Optional[float]
    longitude: Optional[float]
    hazard_type: str = "Road Hazard"
    description: str = "Hazard detected nearby"

    @property
    def location(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hazard_id": self.hazard_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "hazard_type": self.hazard_type,
            "description": self.description,
        }


@dataclass(frozen=True)
class Recipient:
    """
    A candidate for notification.

    Responders carry no meaningful location for dispatch purposes; users
    are only notified when their location is known and inside the radius.
    """
    recipient_id: str
    role: RecipientRole
    push_token: Optional[str] = None
    location: Optional[Coordinate] = None

    @classmethod
    def responder(
        cls,
        recipient_id: str,
        push_token: Optional[str] = None,
        location: Optional[Coordinate] = None,
    ) -> "Recipient":
        return cls(recipient_id, RecipientRole.RESPONDER, push_token, location)

    @classmethod
    def user(
        cls,
        recipient_id: str,
        push_token: Optional[str] = None,
        location: Optional[Coordinate] = None,
    ) -> "Recipient":
        return cls(recipient_id, RecipientRole.USER, push_token, location)

    @property
    def is_responder(self) -> bool:
        return self.role == RecipientRole.RESPONDER


# ═══════════════════════════════════════════════════════════════════════════
# Derived values
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EligibilityDecision:
    """Notify / skip verdict for one candidate against one hazard."""
    recipient: Recipient
    should_notify: bool
    distance_meters: Optional[float] = None
    reason: Optional[SkipReason] = None


@dataclass(frozen=True)
class PlatformHints:
    """Delivery hints copied unchanged into every platform section."""
    priority: str = "high"
    sound: str = "default"
    channel_id: str = "hazard_alerts"
    badge: int = 1


@dataclass(frozen=True)
class NotificationPayload:
    """
    Transport-ready notification for one recipient.

    Every value in ``data`` is a string so the map survives the trip to
    both Android and iOS clients without numeric type ambiguity.
    """
    token: str
    title: str
    body: str
    data: Dict[str, str]
    hints: PlatformHints = field(default_factory=PlatformHints)
    recipient_id: str = ""

    @property
    def token_prefix(self) -> str:
        return self.token[:12] + "..." if len(self.token) > 12 else self.token

    def to_message(self) -> Dict[str, Any]:
        """Render the platform-neutral message dict handed to a transport."""
        return {
            "token": self.token,
            "notification": {
                "title": self.title,
                "body": self.body,
            },
            "data": dict(self.data),
            "android": {
                "priority": self.hints.priority,
                "notification": {
                    "sound": self.hints.sound,
                    "channel_id": self.hints.channel_id,
                },
            },
            "apns": {
                "payload": {
                    "aps": {
                        "sound": self.hints.sound,
                        "badge": self.hints.badge,
                    },
                },
            },
        }


# ═══════════════════════════════════════════════════════════════════════════
# Delivery results
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransportResponse:
    """What a transport reports for one submitted item."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome for one item of a batch, keyed by its position."""
    index: int
    recipient_id: str
    token_prefix: str
    status: DeliveryStatus
    message_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "recipient_id": self.recipient_id,
            "token_prefix": self.token_prefix,
            "status": self.status.value,
            "message_id": self.message_id,
            "error_message": self.error_message,
        }


@dataclass
class BatchResult:
    """All per-item outcomes of one batch send."""
    results: List[DeliveryResult] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failure_count(self) -> int:
        return sum(1 for r in self.results if not r.succeeded)

    @property
    def failures(self) -> List[DeliveryResult]:
        return [r for r in self.results if not r.succeeded]


# ═══════════════════════════════════════════════════════════════════════════
# Output
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class DispatchSummary:
    """
    Aggregated result of one hazard-event notification run.

    ``nearby_count`` counts every recipient that passed the filter,
    responders included.
    """
    hazard_id: str
    outcome: DispatchOutcome
    success: bool
    total_sent: int = 0
    total_failed: int = 0
    nearby_count: int = 0
    message: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=_now)
    completed_at: Optional[datetime] = None
    failures: List[DeliveryResult] = field(default_factory=list)

    @classmethod
    def rejected(cls, hazard_id: str, reason: str) -> "DispatchSummary":
        return cls(
            hazard_id=hazard_id,
            outcome=DispatchOutcome.REJECTED,
            success=False,
            message=reason,
            completed_at=_now(),
        )

    @classmethod
    def empty(cls, hazard_id: str, message: str) -> "DispatchSummary":
        return cls(
            hazard_id=hazard_id,
            outcome=DispatchOutcome.EMPTY,
            success=True,
            message=message,
            completed_at=_now(),
        )

    @classmethod
    def failed(cls, hazard_id: str, error: str) -> "DispatchSummary":
        return cls(
            hazard_id=hazard_id,
            outcome=DispatchOutcome.FAILED,
            success=False,
            error=error,
            completed_at=_now(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hazard_id": self.hazard_id,
            "outcome": self.outcome.value,
            "success": self.success,
            "total_sent": self.total_sent,
            "total_failed": self.total_failed,
            "nearby_count": self.nearby_count,
            "message": self.message,
            "error": self.error,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "failures": [f.to_dict() for f in self.failures],
        }
