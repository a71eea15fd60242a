"""
dispatch_service.py — One hazard in, one delivery summary out.

═══════════════════════════════════════════════════════════════════════════
ORCHESTRATION FLOW
═══════════════════════════════════════════════════════════════════════════

    ┌─────────────────────┐
    │  Trigger            │  new hazard record → HazardEvent
    └─────────┬───────────┘
              │
              ▼
    ┌─────────────────────┐
    │  1. Validate        │  coordinates missing / malformed
    │                     │    → REJECTED (nothing enumerated, no send)
    └─────────┬───────────┘
              │
              ▼
    ┌─────────────────────┐
    │  2. Enumerate       │  list_responders() ∥ list_users()
    │     candidates      │  (two worker threads, no ordering between them)
    └─────────┬───────────┘
              │
              ▼
    ┌─────────────────────┐
    │  3. Filter          │  token gate → responder → radius test
    └─────────┬───────────┘
              │            nobody accepted → EMPTY (success, no send)
              ▼
    ┌─────────────────────┐
    │  4. Build payloads  │  one NotificationPayload per accepted recipient
    └─────────┬───────────┘
              │
              ▼
    ┌─────────────────────┐
    │  5. Batch dispatch  │  exactly one transport call
    └─────────┬───────────┘
              │
              ▼
    ┌─────────────────────┐
    │  6. Summary         │  sent / failed from the batch,
    │                     │  nearby = accepted (responders included)
    └─────────────────────┘

═══════════════════════════════════════════════════════════════════════════
FAILURE HANDLING
═══════════════════════════════════════════════════════════════════════════

    Invalid event            REJECTED summary, logged at WARNING
    No eligible recipients   EMPTY summary, success=True
    One recipient fails      counted in total_failed, siblings unaffected
    Anything else            caught once in handle_hazard → FAILED summary

``handle_hazard`` never raises: the trigger that calls it has no retry
contract, so every run ends in a DispatchSummary.

A responder who is also listed as a user is evaluated in both passes and
may receive two notifications. This is logged, not deduplicated.
"""

from __future__ import annotations

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from backend.hazard_dispatch.alerts.batch_dispatcher import BatchDispatcher
from backend.hazard_dispatch.alerts.candidate_source import (
    CandidateSource,
    FirestoreCandidateSource,
    InMemoryCandidateSource,
)
from backend.hazard_dispatch.alerts.hazard_records import validate_hazard_event
from backend.hazard_dispatch.alerts.models import (
    DispatchOutcome,
    DispatchSummary,
    HazardEvent,
    PlatformHints,
    Recipient,
)
from backend.hazard_dispatch.alerts.payload_builder import (
    build_payload,
    platform_hints_from_settings,
)
from backend.hazard_dispatch.alerts.recipient_filter import (
    DEFAULT_RADIUS_METERS,
    filter_recipients,
)
from backend.hazard_dispatch.core.config import Settings, settings as app_settings
from backend.hazard_dispatch.core.errors import InvalidEventError
from backend.hazard_dispatch.core.logging_config import dispatch_context

logger = logging.getLogger(__name__)

NO_CANDIDATES_MESSAGE = "No users or responders found"
NO_NEARBY_MESSAGE = "No nearby users or responders to notify"


class DispatchCoordinator:
    """
    Runs the notification pipeline for one hazard event at a time.

    Parameters
    ----------
    candidate_source : CandidateSource
        Recipient directory.
    dispatcher : BatchDispatcher
        Wraps the push transport.
    radius_meters : float
        Inclusive notify radius for users.
    hints : PlatformHints | None
        Platform delivery hints stamped on every payload.
    concurrent_enumeration : bool
        Enumerate responders and users on two threads (default) or
        one after the other.
    """

    def __init__(
        self,
        candidate_source: CandidateSource,
        dispatcher: BatchDispatcher,
        *,
        radius_meters: float = DEFAULT_RADIUS_METERS,
        hints: Optional[PlatformHints] = None,
        concurrent_enumeration: bool = True,
    ) -> None:
        if radius_meters <= 0:
            raise ValueError(f"Radius must be positive, got {radius_meters}")
        self._source = candidate_source
        self._dispatcher = dispatcher
        self._radius_meters = radius_meters
        self._hints = hints or PlatformHints()
        self._concurrent = concurrent_enumeration

    @property
    def radius_meters(self) -> float:
        return self._radius_meters

    @property
    def transport_name(self) -> str:
        return self._dispatcher.transport_name

    # ── Public entry point ──

    def handle_hazard(self, event: HazardEvent) -> DispatchSummary:
        """
        Notify everyone who should hear about ``event``.

        Returns
        -------
        DispatchSummary
            Always; never raises.
        """
        hazard_id = getattr(event, "hazard_id", "unknown")
        with dispatch_context(hazard_id=hazard_id):
            logger.info("New hazard detected: %s", hazard_id)

            try:
                validate_hazard_event(event)
            except InvalidEventError as exc:
                logger.warning("No valid location in hazard %s: %s", hazard_id, exc.message)
                return DispatchSummary.rejected(hazard_id, exc.message)
            except Exception as exc:
                logger.exception("Validating hazard %s failed", hazard_id)
                return DispatchSummary.failed(hazard_id, str(exc) or type(exc).__name__)

            try:
                return self._dispatch(event)
            except Exception as exc:
                logger.exception("Dispatch for hazard %s failed", hazard_id)
                return DispatchSummary.failed(hazard_id, str(exc) or type(exc).__name__)

    # ── Pipeline steps ──

    def _enumerate(self) -> Tuple[List[Recipient], List[Recipient]]:
        if not self._concurrent:
            return self._source.list_responders(), self._source.list_users()

        # Each task gets its own context copy so log records keep the hazard id
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="candidates") as pool:
            responders_f = pool.submit(contextvars.copy_context().run, self._source.list_responders)
            users_f = pool.submit(contextvars.copy_context().run, self._source.list_users)
            return responders_f.result(), users_f.result()

    def _dispatch(self, event: HazardEvent) -> DispatchSummary:
        started = datetime.now(timezone.utc)

        responders, users = self._enumerate()
        candidates = [*responders, *users]

        if not candidates:
            logger.info(NO_CANDIDATES_MESSAGE)
            return DispatchSummary.empty(event.hazard_id, NO_CANDIDATES_MESSAGE)

        logger.info(
            "Total people to check: %d (%d responders, %d users)",
            len(candidates), len(responders), len(users),
        )

        overlap = {r.recipient_id for r in responders} & {u.recipient_id for u in users}
        if overlap:
            logger.debug(
                "%d recipient(s) listed as both responder and user, evaluated twice: %s",
                len(overlap), sorted(overlap),
            )

        accepted, _skipped = filter_recipients(event.location, candidates, self._radius_meters)

        if not accepted:
            logger.info(NO_NEARBY_MESSAGE)
            return DispatchSummary.empty(event.hazard_id, NO_NEARBY_MESSAGE)

        payloads = [build_payload(event, decision, self._hints) for decision in accepted]
        batch = self._dispatcher.dispatch(payloads)

        summary = DispatchSummary(
            hazard_id=event.hazard_id,
            outcome=DispatchOutcome.DISPATCHED,
            success=True,
            total_sent=batch.success_count,
            total_failed=batch.failure_count,
            nearby_count=len(accepted),
            started_at=started,
            completed_at=datetime.now(timezone.utc),
            failures=batch.failures,
        )

        logger.info(
            "Hazard %s dispatch complete: %d sent, %d failed, %d nearby, %.1fs",
            event.hazard_id, summary.total_sent, summary.total_failed,
            summary.nearby_count,
            (summary.completed_at - started).total_seconds(),
        )
        return summary


# ═══════════════════════════════════════════════════════════════════════════
# Factory
# ═══════════════════════════════════════════════════════════════════════════

def build_coordinator(
    config: Optional[Settings] = None,
    *,
    firebase_app: Any = None,
    candidate_source: Optional[CandidateSource] = None,
) -> DispatchCoordinator:
    """
    Wire a DispatchCoordinator from settings.

    PUSH_TRANSPORT selects simulation | fcm; CANDIDATE_SOURCE selects
    memory | firestore. Firebase-backed choices need ``firebase_app``.
    """
    config = config or app_settings

    if config.PUSH_TRANSPORT == "fcm":
        from backend.hazard_dispatch.alerts.channels.fcm_push import FcmPushTransport

        if firebase_app is None:
            raise ValueError("PUSH_TRANSPORT=fcm requires a Firebase app")
        transport = FcmPushTransport(firebase_app, dry_run=config.PUSH_DRY_RUN)
    elif config.PUSH_TRANSPORT == "simulation":
        from backend.hazard_dispatch.alerts.channels.simulated_push import SimulatedPushTransport

        transport = SimulatedPushTransport()
    else:
        raise ValueError(f"Unknown PUSH_TRANSPORT: {config.PUSH_TRANSPORT!r}")

    if candidate_source is None:
        if config.CANDIDATE_SOURCE == "firestore":
            from firebase_admin import firestore

            if firebase_app is None:
                raise ValueError("CANDIDATE_SOURCE=firestore requires a Firebase app")
            candidate_source = FirestoreCandidateSource(
                firestore.client(firebase_app),
                responders_collection=config.RESPONDERS_COLLECTION,
                users_collection=config.USERS_COLLECTION,
            )
        elif config.CANDIDATE_SOURCE == "memory":
            candidate_source = InMemoryCandidateSource()
        else:
            raise ValueError(f"Unknown CANDIDATE_SOURCE: {config.CANDIDATE_SOURCE!r}")

    logger.info(
        "Dispatch wired: transport=%s, candidates=%s, radius=%.0f m",
        transport.name, getattr(candidate_source, "name", type(candidate_source).__name__),
        config.NOTIFY_RADIUS_METERS,
    )

    return DispatchCoordinator(
        candidate_source,
        BatchDispatcher(transport),
        radius_meters=config.NOTIFY_RADIUS_METERS,
        hints=platform_hints_from_settings(config),
    )
