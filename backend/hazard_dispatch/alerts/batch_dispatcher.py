"""
batch_dispatcher.py — Send one batch of notifications, keep every outcome.

═══════════════════════════════════════════════════════════════════════════
PARTIAL-FAILURE CONTRACT
═══════════════════════════════════════════════════════════════════════════

    payloads ──► transport.send_batch()  (exactly one call)
                    │
                    ▼
             [resp₀, resp₁, … respₙ₋₁]   one per payload, same order
                    │
                    ▼
             [DeliveryResult₀ … ₙ₋₁]     failure of item k leaves all
                                          other items untouched

Every failed item is logged with its index, recipient id and token
prefix. A transport that raises, or answers with the wrong number of
responses, fails the whole batch with TransportError; the coordinator
decides what that means for the event.
"""

from __future__ import annotations

import logging
import time
from typing import List, Protocol, Sequence

from backend.hazard_dispatch.alerts.models import (
    BatchResult,
    DeliveryResult,
    DeliveryStatus,
    NotificationPayload,
    TransportResponse,
)
from backend.hazard_dispatch.core.errors import TransportError

logger = logging.getLogger(__name__)


class PushTransport(Protocol):
    """Anything that can deliver a batch of payloads with per-item results."""

    name: str

    def send_batch(self, payloads: Sequence[NotificationPayload]) -> List[TransportResponse]:
        ...


class BatchDispatcher:
    """Submit payloads to a push transport as one batch."""

    def __init__(self, transport: PushTransport) -> None:
        self._transport = transport

    @property
    def transport_name(self) -> str:
        return getattr(self._transport, "name", type(self._transport).__name__)

    def dispatch(self, payloads: Sequence[NotificationPayload]) -> BatchResult:
        """
        Send all payloads in a single transport call.

        Parameters
        ----------
        payloads : sequence of NotificationPayload
            Must be non-empty.

        Returns
        -------
        BatchResult
            One DeliveryResult per payload, in submission order.

        Raises
        ------
        ValueError
            If ``payloads`` is empty.
        TransportError
            If the transport returns a response count that does not
            match the batch size.
        """
        if not payloads:
            raise ValueError("BatchDispatcher.dispatch requires at least one payload")

        started = time.perf_counter()
        logger.info(
            "Sending %d notifications via %s", len(payloads), self.transport_name,
        )

        responses = self._transport.send_batch(payloads)

        if len(responses) != len(payloads):
            raise TransportError(
                self.transport_name,
                f"expected {len(payloads)} responses, got {len(responses)}",
            )

        result = BatchResult()
        for index, (payload, resp) in enumerate(zip(payloads, responses)):
            status = DeliveryStatus.DELIVERED if resp.success else DeliveryStatus.FAILED
            item = DeliveryResult(
                index=index,
                recipient_id=payload.recipient_id,
                token_prefix=payload.token_prefix,
                status=status,
                message_id=resp.message_id,
                error_message=None if resp.success else (resp.error or "unknown error"),
            )
            result.results.append(item)

            if not item.succeeded:
                logger.error(
                    "Failed for token %d (recipient=%s, token=%s): %s",
                    index, item.recipient_id, item.token_prefix, item.error_message,
                    extra={"item_index": index, "recipient_id": item.recipient_id},
                )

        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Batch complete via %s: %d sent, %d failed (%.1fms)",
            self.transport_name, result.success_count, result.failure_count, duration_ms,
            extra={"duration_ms": duration_ms},
        )
        return result
