"""
FastAPI route: hazard notification trigger.

Provides endpoints to:
    POST /api/v1/hazards/{hazard_id}/notify   — dispatch for a new hazard record
    GET  /api/v1/hazards/config               — active dispatch configuration

The notify endpoint is the HTTP form of the "new hazard record" trigger:
the body is the raw hazard document, flat or nested per HAZARD_SCHEMA.
It always answers 200 with a DispatchSummary; rejection and failure are
reported in the body, not as HTTP errors.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from backend.hazard_dispatch.alerts.dispatch_service import DispatchCoordinator
from backend.hazard_dispatch.alerts.hazard_records import hazard_from_record
from backend.hazard_dispatch.core.config import settings
from backend.hazard_dispatch.core.errors import HazardDispatchError

router = APIRouter(prefix="/api/v1/hazards", tags=["hazard-notifications"])


# ---------------------------------------------------------------------------
# Request / Response Schemas
# ---------------------------------------------------------------------------

class HazardRecordInput(BaseModel):
    """Raw hazard document as written by the reporting app."""
    model_config = ConfigDict(extra="allow")

    latitude: Optional[Any] = Field(None, examples=[37.0])
    longitude: Optional[Any] = Field(None, examples=[-122.0])
    location: Optional[Dict[str, Any]] = Field(
        None, description="Nested location (HAZARD_SCHEMA=nested)",
        examples=[{"latitude": 37.0, "longitude": -122.0}],
    )
    type: Optional[str] = Field(None, examples=["Pothole"])
    description: Optional[str] = Field(None, examples=["Deep pothole in right lane"])


class DeliveryFailureResponse(BaseModel):
    index: int
    recipient_id: str
    token_prefix: str
    status: str
    message_id: Optional[str] = None
    error_message: Optional[str] = None


class DispatchSummaryResponse(BaseModel):
    """Result of one notification run."""
    hazard_id: str
    outcome: str
    success: bool
    total_sent: int
    total_failed: int
    nearby_count: int
    message: Optional[str] = None
    error: Optional[str] = None
    started_at: str
    completed_at: Optional[str] = None
    failures: List[DeliveryFailureResponse] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_coordinator(request: Request) -> DispatchCoordinator:
    coordinator = getattr(request.app.state, "coordinator", None)
    if coordinator is None:
        raise HazardDispatchError(
            "Dispatch coordinator not initialised",
            status_code=503,
            error_code="SERVICE_UNAVAILABLE",
        )
    return coordinator


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/{hazard_id}/notify",
    response_model=DispatchSummaryResponse,
    summary="Notify responders and nearby users about a new hazard",
)
def notify_hazard(
    hazard_id: str,
    body: HazardRecordInput,
    coordinator: DispatchCoordinator = Depends(get_coordinator),
) -> Dict[str, Any]:
    event = hazard_from_record(hazard_id, body.model_dump(exclude_none=True))
    summary = coordinator.handle_hazard(event)
    return summary.to_dict()


@router.get("/config", summary="Active dispatch configuration")
def dispatch_config(
    coordinator: DispatchCoordinator = Depends(get_coordinator),
) -> Dict[str, Any]:
    return {
        "radius_meters": coordinator.radius_meters,
        "transport": coordinator.transport_name,
        "candidate_source": settings.CANDIDATE_SOURCE,
        "hazard_schema": settings.HAZARD_SCHEMA,
        "default_hazard_type": settings.DEFAULT_HAZARD_TYPE,
    }
