"""
Request middleware — logging, timing, correlation IDs.

Provides:
    • X-Request-ID header injection (correlation ID)
    • Request/response timing (X-Process-Time header)
    • Structured log entry per request
    • hazard_id tagging for notify requests, so every line of a dispatch
      can be found by hazard
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.hazard_dispatch.core.logging_config import set_request_context

logger = logging.getLogger(__name__)

_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health/live")

_NOTIFY_PATH = re.compile(r"^/api/v1/hazards/(?P<hazard_id>[^/]+)/notify/?$")


def hazard_id_from_path(path: str) -> Optional[str]:
    """Return the hazard id of a notify request path, else None."""
    match = _NOTIFY_PATH.match(path)
    return match.group("hazard_id") if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with timing and a correlation ID."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:16])
        path = request.url.path

        context = {"request_id": request_id, "endpoint": path, "method": request.method}
        hazard_id = hazard_id_from_path(path)
        if hazard_id is not None:
            context["hazard_id"] = hazard_id
        set_request_context(**context)
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                "%s %s → 500 (%.1fms)", request.method, path, duration_ms,
                extra={"duration_ms": duration_ms, "status_code": 500},
            )
            set_request_context()
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"

        if not path.startswith(_QUIET_PREFIXES):
            log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
            logger.log(
                log_level,
                "%s %s → %d (%.1fms)",
                request.method, path, response.status_code, duration_ms,
                extra={
                    "duration_ms": duration_ms,
                    "status_code": response.status_code,
                    "endpoint": path,
                },
            )

        set_request_context()
        return response
