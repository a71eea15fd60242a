"""
Health check aggregation.

Checks:
    • Dispatch pipeline wiring (coordinator present on app.state)
    • Push transport configuration
    • Recipient directory configuration

Returns a structured report suitable for liveness/readiness probes.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from backend.hazard_dispatch.core.config import settings


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"name": self.name, "status": self.status.value}
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    version: str = settings.APP_VERSION
    environment: str = settings.ENVIRONMENT
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "version": self.version,
            "environment": self.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


_start_time = time.monotonic()


def check_dispatcher(coordinator: Optional[Any]) -> ComponentHealth:
    """Is a coordinator wired, and with which transport?"""
    comp = ComponentHealth(name="dispatcher")
    if coordinator is None:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "Dispatch coordinator not initialised"
        return comp

    comp.details = {
        "transport": coordinator.transport_name,
        "radius_meters": coordinator.radius_meters,
    }
    if settings.is_production and coordinator.transport_name == "simulation":
        comp.status = HealthStatus.DEGRADED
        comp.message = "Simulated push transport in production"
    else:
        comp.message = "Ready"
    return comp


def check_candidate_source() -> ComponentHealth:
    """Report which recipient directory is configured."""
    comp = ComponentHealth(name="candidate_source")
    comp.details = {
        "backend": settings.CANDIDATE_SOURCE,
        "responders_collection": settings.RESPONDERS_COLLECTION,
        "users_collection": settings.USERS_COLLECTION,
    }
    if settings.is_production and settings.CANDIDATE_SOURCE == "memory":
        comp.status = HealthStatus.DEGRADED
        comp.message = "In-memory recipient directory in production"
    return comp


def run_health_check(coordinator: Optional[Any]) -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(uptime_seconds=time.monotonic() - _start_time)
    report.components = [check_dispatcher(coordinator), check_candidate_source()]

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    return report
