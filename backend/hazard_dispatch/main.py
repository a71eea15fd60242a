"""
FastAPI application entry point.

Run with:
    uvicorn backend.hazard_dispatch.main:app --reload --port 8000
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.hazard_dispatch.core.config import settings
from backend.hazard_dispatch.core.logging_config import setup_logging, get_logger
from backend.hazard_dispatch.core.errors import register_error_handlers
from backend.hazard_dispatch.core.middleware import RequestLoggingMiddleware
from backend.hazard_dispatch.core.health import HealthStatus, run_health_check

# ── Dispatch pipeline ──
from backend.hazard_dispatch.alerts.dispatch_service import build_coordinator

# ── API routers ──
from backend.hazard_dispatch.api.v1.hazards import router as hazard_router

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Own the Firebase app and the coordinator for the process lifetime."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )

    firebase_app = None
    if settings.needs_firebase:
        from backend.hazard_dispatch.core.firebase import create_firebase_app

        firebase_app = create_firebase_app(settings)

    app.state.coordinator = build_coordinator(settings, firebase_app=firebase_app)
    yield

    app.state.coordinator = None
    if firebase_app is not None:
        from backend.hazard_dispatch.core.firebase import close_firebase_app

        close_firebase_app(firebase_app)
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Proximity-filtered hazard notifications. For each new hazard "
        "report, notifies every responder and every user within "
        f"{settings.NOTIFY_RADIUS_METERS / 1000:.0f} km through one "
        "batched push send, and returns a delivery summary."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware (last added runs outermost) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(hazard_router)


# ── Root & health endpoints ──

@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "docs": "/docs",
    }


@app.get("/health/live", tags=["health"])
async def liveness():
    """Liveness probe — is the process alive?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness():
    """Readiness probe — is the dispatch pipeline wired?"""
    report = run_health_check(getattr(app.state, "coordinator", None))
    if report.status == HealthStatus.UNHEALTHY:
        return JSONResponse(status_code=503, content=report.to_dict())
    return report.to_dict()
