"""
payload_builder.py — Turn an accepted decision into a push notification.

Message framing by role:

    Role        Title                     Body
    ─────────   ───────────────────────   ──────────────────────────────────
    Responder   "<type> Detected"         description
    User        "<type> Nearby"           description + " (1.2 km away)"

Data map (all values strings):

    hazardId, hazardType, latitude, longitude, type="hazard_alert",
    recipientRole, distance (users only, whole metres)
"""

from __future__ import annotations

from typing import Dict, Optional

from backend.hazard_dispatch.alerts.models import (
    EligibilityDecision,
    HazardEvent,
    NotificationPayload,
    PlatformHints,
)
from backend.hazard_dispatch.core.config import Settings, settings as app_settings
from backend.hazard_dispatch.core.errors import PayloadBuildError
from backend.hazard_dispatch.spatial.geo_distance import format_distance_km

NOTIFICATION_TYPE = "hazard_alert"


def platform_hints_from_settings(config: Optional[Settings] = None) -> PlatformHints:
    """Build PlatformHints from the PUSH_* / ANDROID_* / APNS_* settings."""
    config = config or app_settings
    return PlatformHints(
        priority=config.PUSH_PRIORITY,
        sound=config.PUSH_SOUND,
        channel_id=config.ANDROID_CHANNEL_ID,
        badge=config.APNS_BADGE,
    )


def _build_data(hazard: HazardEvent, decision: EligibilityDecision) -> Dict[str, str]:
    data = {
        "hazardId": str(hazard.hazard_id),
        "hazardType": str(hazard.hazard_type),
        "latitude": str(hazard.latitude),
        "longitude": str(hazard.longitude),
        "type": NOTIFICATION_TYPE,
        "recipientRole": decision.recipient.role.value,
    }
    if decision.distance_meters is not None:
        data["distance"] = f"{decision.distance_meters:.0f}"
    return data


def build_payload(
    hazard: HazardEvent,
    decision: EligibilityDecision,
    hints: Optional[PlatformHints] = None,
) -> NotificationPayload:
    """
    Build the notification for one accepted recipient.

    Parameters
    ----------
    hazard : HazardEvent
        The (already validated) hazard.
    decision : EligibilityDecision
        Must have ``should_notify=True``.
    hints : PlatformHints | None
        Platform delivery hints; defaults to PlatformHints().

    Returns
    -------
    NotificationPayload

    Raises
    ------
    PayloadBuildError
        If the decision is a skip or the recipient has no token.
    """
    recipient = decision.recipient
    if not decision.should_notify:
        raise PayloadBuildError(recipient.recipient_id, "recipient is not eligible")
    if not recipient.push_token:
        raise PayloadBuildError(recipient.recipient_id, "recipient has no push token")

    if recipient.is_responder or decision.distance_meters is None:
        title = f"{hazard.hazard_type} Detected"
        body = hazard.description
    else:
        title = f"{hazard.hazard_type} Nearby"
        body = (
            f"{hazard.description} "
            f"({format_distance_km(decision.distance_meters)} km away)"
        )

    return NotificationPayload(
        token=recipient.push_token,
        title=title,
        body=body,
        data=_build_data(hazard, decision),
        hints=hints or PlatformHints(),
        recipient_id=recipient.recipient_id,
    )
