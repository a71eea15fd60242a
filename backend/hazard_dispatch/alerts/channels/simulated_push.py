"""
simulated_push.py — Development push transport.

Logs every notification and reports it as delivered, without talking to
any push service. Used when PUSH_TRANSPORT=simulation (the default) so
the service runs locally without Firebase credentials.

Tokens listed in ``failing_tokens`` are reported as failed with an
"unregistered" error, which lets developers exercise the partial-failure
path end to end. Only the last ``history_size`` delivered messages are kept
in ``sent``.
"""

from __future__ import annotations

import logging
import uuid
from collections import deque
from typing import Deque, Iterable, List, Optional, Sequence

from backend.hazard_dispatch.alerts.models import NotificationPayload, TransportResponse

logger = logging.getLogger(__name__)

SENT_HISTORY_SIZE = 100


class SimulatedPushTransport:
    """Log-only transport with optional per-token failures."""

    name = "simulation"

    def __init__(
        self,
        failing_tokens: Optional[Iterable[str]] = None,
        history_size: int = SENT_HISTORY_SIZE,
    ) -> None:
        self._failing_tokens = frozenset(failing_tokens or ())
        # Most recent messages only; oldest drop off
        self.sent: Deque[dict] = deque(maxlen=history_size)

    def send_batch(self, payloads: Sequence[NotificationPayload]) -> List[TransportResponse]:
        responses: List[TransportResponse] = []

        for payload in payloads:
            if payload.token in self._failing_tokens:
                responses.append(TransportResponse(
                    success=False,
                    error="Requested entity was not found (simulated unregistered token)",
                ))
                continue

            message = payload.to_message()
            self.sent.append(message)
            logger.info(
                "[SIMULATED_PUSH] %s → %s: %s",
                payload.data.get("hazardId"),
                payload.recipient_id or payload.token_prefix,
                payload.title,
            )
            responses.append(TransportResponse(
                success=True,
                message_id=f"simulated/{uuid.uuid4().hex[:12]}",
            ))

        return responses
