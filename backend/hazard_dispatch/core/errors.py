"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes for the dispatch pipeline
    • Consistent JSON error response format
    • Automatic logging of unhandled errors
    • Request context in error responses (non-production)

Per-recipient delivery failures are NOT exceptions: they travel as
DeliveryResult values through the batch dispatcher. The classes below
cover whole-event and whole-batch failures only.

Usage:
    from backend.hazard_dispatch.core.errors import (
        HazardDispatchError,
        InvalidEventError,
        CandidateSourceError,
        PayloadBuildError,
        TransportError,
        register_error_handlers,
    )

    raise InvalidEventError("Hazard has no longitude", field="longitude")
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.hazard_dispatch.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class HazardDispatchError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class InvalidEventError(HazardDispatchError):
    """Hazard record is missing or has malformed coordinates (422)."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(
            message=message,
            status_code=422,
            error_code="INVALID_EVENT",
            details=d,
        )


class CandidateSourceError(HazardDispatchError):
    """Recipient directory could not be enumerated (502)."""

    def __init__(self, source: str, message: str = "", **details: Any):
        super().__init__(
            message=f"Candidate source '{source}' failed: {message}",
            status_code=502,
            error_code="CANDIDATE_SOURCE_ERROR",
            details={"source": source, **details},
        )


class PayloadBuildError(HazardDispatchError):
    """Notification payload could not be built (500)."""

    def __init__(self, recipient_id: str, message: str = ""):
        super().__init__(
            message=f"Payload for {recipient_id} could not be built: {message}",
            status_code=500,
            error_code="PAYLOAD_BUILD_ERROR",
            details={"recipient_id": recipient_id},
        )


class TransportError(HazardDispatchError):
    """Push transport failed for the whole batch (502)."""

    def __init__(self, transport: str, message: str = "", **details: Any):
        super().__init__(
            message=f"Push transport '{transport}' failed: {message}",
            status_code=502,
            error_code="PUSH_TRANSPORT_ERROR",
            details={"transport": transport, **details},
        )


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        }
    }

    if details:
        body["error"]["details"] = details

    # Include request path in non-production
    if request and not settings.is_production:
        body["error"]["path"] = str(request.url.path)
        body["error"]["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(HazardDispatchError)
    async def handle_dispatch_error(request: Request, exc: HazardDispatchError):
        logger.error(
            "API Error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError):
        logger.warning("ValueError: %s", exc)
        return _build_error_response(
            422, "VALIDATION_ERROR", str(exc), request=request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception: %s\n%s",
            exc, traceback.format_exc(),
        )
        message = str(exc) if settings.DEBUG else "Internal server error"
        details = (
            {"traceback": traceback.format_exc().split("\n")}
            if settings.DEBUG else None
        )
        return _build_error_response(
            500, "INTERNAL_ERROR", message, details, request,
        )
