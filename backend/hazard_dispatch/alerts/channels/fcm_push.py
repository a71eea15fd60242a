"""
fcm_push.py — Firebase Cloud Messaging transport.

Delivery mechanism:
    • firebase_admin.messaging.send_each — one HTTP/2 batch per call,
      independent result per message
    • Android: priority + notification sound + channel id
    • iOS (APNs): aps.sound + aps.badge

FCM accepts at most 500 messages per send_each call. Larger batches are
split into consecutive chunks and the per-item responses are concatenated
in submission order, so callers still see exactly one response per payload.

The firebase_admin App is created by the hosting process (see
core/firebase.py) and injected here; this module never initialises a
default app on its own.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from firebase_admin import App, exceptions, messaging

from backend.hazard_dispatch.alerts.models import NotificationPayload, TransportResponse
from backend.hazard_dispatch.core.errors import TransportError

logger = logging.getLogger(__name__)

FCM_MAX_BATCH_SIZE = 500


def to_fcm_message(payload: NotificationPayload) -> messaging.Message:
    """Convert a NotificationPayload into a firebase_admin Message."""
    hints = payload.hints
    return messaging.Message(
        token=payload.token,
        notification=messaging.Notification(
            title=payload.title,
            body=payload.body,
        ),
        data=dict(payload.data),
        android=messaging.AndroidConfig(
            priority=hints.priority,
            notification=messaging.AndroidNotification(
                sound=hints.sound,
                channel_id=hints.channel_id,
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(sound=hints.sound, badge=hints.badge),
            ),
        ),
    )


class FcmPushTransport:
    """Push transport backed by firebase_admin.messaging."""

    name = "fcm"

    def __init__(
        self,
        app: Optional[App] = None,
        *,
        dry_run: bool = False,
        max_batch_size: int = FCM_MAX_BATCH_SIZE,
    ) -> None:
        if not 1 <= max_batch_size <= FCM_MAX_BATCH_SIZE:
            raise ValueError(
                f"max_batch_size must be in [1, {FCM_MAX_BATCH_SIZE}], got {max_batch_size}"
            )
        self._app = app
        self._dry_run = dry_run
        self._max_batch_size = max_batch_size

    def send_batch(self, payloads: Sequence[NotificationPayload]) -> List[TransportResponse]:
        messages = [to_fcm_message(p) for p in payloads]
        responses: List[TransportResponse] = []

        for start in range(0, len(messages), self._max_batch_size):
            chunk = messages[start:start + self._max_batch_size]
            try:
                batch = messaging.send_each(chunk, dry_run=self._dry_run, app=self._app)
            except exceptions.FirebaseError as exc:
                raise TransportError(
                    self.name, str(exc),
                    code=getattr(exc, "code", None),
                    chunk_start=start,
                ) from exc

            logger.info(
                "[FCM] chunk %d-%d: %d sent, %d failed",
                start, start + len(chunk) - 1,
                batch.success_count, batch.failure_count,
            )

            for resp in batch.responses:
                if resp.success:
                    responses.append(TransportResponse(success=True, message_id=resp.message_id))
                else:
                    error = resp.exception
                    responses.append(TransportResponse(
                        success=False,
                        error=f"{getattr(error, 'code', 'unknown')}: {error}",
                    ))

        return responses
