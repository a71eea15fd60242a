"""
recipient_filter.py — Decide who hears about a hazard.

═══════════════════════════════════════════════════════════════════════════
ELIGIBILITY RULES (first match wins)
═══════════════════════════════════════════════════════════════════════════

    1. No push token           → skip (any role, no way to deliver)
    2. Responder               → notify, no distance computed
    3. User with a location    → notify iff haversine(hazard, user) ≤ radius
    4. User without a location → skip

The radius test is inclusive: a user exactly ``radius_meters`` away is
notified. The distance computed in rule 3 is kept on the decision so the
payload builder can quote it without recomputing.

Every function here is pure: no I/O, no mutation of its inputs.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from backend.hazard_dispatch.alerts.models import (
    EligibilityDecision,
    Recipient,
    SkipReason,
)
from backend.hazard_dispatch.spatial.geo_distance import Coordinate, haversine_meters

logger = logging.getLogger(__name__)


# Reference behaviour: users within 5 km of the hazard are notified
DEFAULT_RADIUS_METERS: float = 5_000.0


def evaluate_recipient(
    hazard_location: Coordinate,
    recipient: Recipient,
    radius_meters: float = DEFAULT_RADIUS_METERS,
) -> EligibilityDecision:
    """
    Apply the eligibility rules to one candidate.

    Parameters
    ----------
    hazard_location : Coordinate
        Where the hazard was reported.
    recipient : Recipient
        The candidate being evaluated.
    radius_meters : float
        Inclusive notify radius for users.

    Returns
    -------
    EligibilityDecision

    Examples
    --------
    >>> hazard = Coordinate(37.0, -122.0)
    >>> evaluate_recipient(hazard, Recipient.responder("R1", "T1")).should_notify
    True
    >>> evaluate_recipient(hazard, Recipient.user("U1", None, hazard)).reason
    <SkipReason.NO_PUSH_TOKEN: 'no_push_token'>
    """
    if not recipient.push_token:
        return EligibilityDecision(
            recipient=recipient,
            should_notify=False,
            reason=SkipReason.NO_PUSH_TOKEN,
        )

    if recipient.is_responder:
        return EligibilityDecision(recipient=recipient, should_notify=True)

    if recipient.location is None:
        return EligibilityDecision(
            recipient=recipient,
            should_notify=False,
            reason=SkipReason.NO_LOCATION,
        )

    distance = haversine_meters(hazard_location, recipient.location)
    inside = distance <= radius_meters
    return EligibilityDecision(
        recipient=recipient,
        should_notify=inside,
        distance_meters=distance,
        reason=None if inside else SkipReason.OUT_OF_RADIUS,
    )


def filter_recipients(
    hazard_location: Coordinate,
    candidates: Iterable[Recipient],
    radius_meters: float = DEFAULT_RADIUS_METERS,
) -> Tuple[List[EligibilityDecision], List[EligibilityDecision]]:
    """
    Partition candidates into (accepted, skipped) decisions.

    Candidate order is preserved in both lists. Duplicate identities are
    evaluated independently.
    """
    accepted: List[EligibilityDecision] = []
    skipped: List[EligibilityDecision] = []

    for recipient in candidates:
        decision = evaluate_recipient(hazard_location, recipient, radius_meters)

        if decision.distance_meters is not None:
            logger.debug(
                "User %s is %.0fm away",
                recipient.recipient_id, decision.distance_meters,
                extra={
                    "recipient_id": recipient.recipient_id,
                    "distance_m": round(decision.distance_meters, 1),
                },
            )

        if decision.should_notify:
            accepted.append(decision)
        else:
            if decision.reason == SkipReason.NO_PUSH_TOKEN:
                logger.info("%s has no push token", recipient.recipient_id)
            skipped.append(decision)

    logger.info(
        "Recipient filter: %d accepted, %d skipped (radius=%.0f m)",
        len(accepted), len(skipped), radius_meters,
    )

    return accepted, skipped
