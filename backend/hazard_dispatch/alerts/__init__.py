"""
alerts — Proximity-filtered hazard notification dispatch.

Sub-modules:
    channels/          — Push transports (simulated, Firebase Cloud Messaging)
    models             — Data structures shared across the pipeline
    hazard_records     — Raw hazard documents → HazardEvent, shape validation
    candidate_source   — Responder / user directory contract and backends
    recipient_filter   — Token gate, responder rule, radius test
    payload_builder    — Accepted recipient → NotificationPayload
    batch_dispatcher   — One batch send with per-item results
    dispatch_service   — Orchestration: one hazard → one DispatchSummary
"""
