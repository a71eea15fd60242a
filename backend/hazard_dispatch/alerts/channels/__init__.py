"""
channels — Push delivery backends.

Each transport exposes:
    name: str
    send_batch(payloads) → List[TransportResponse]   (one per payload, same order)

Transports never raise for a single bad item; they report it in the
matching TransportResponse. Failure of the whole call raises TransportError.
"""
