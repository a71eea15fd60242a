"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development: an in-memory
recipient directory and a simulated push transport, so the service
starts without any Firebase credentials.

Usage:
    from backend.hazard_dispatch.core.config import settings
    print(settings.NOTIFY_RADIUS_METERS)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Hazard Proximity Notifier"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── Proximity ──
    NOTIFY_RADIUS_METERS: float = 5_000.0  # users within 5 km are "nearby"

    # ── Hazard records ──
    DEFAULT_HAZARD_TYPE: str = "Road Hazard"
    DEFAULT_HAZARD_DESCRIPTION: str = "Hazard detected nearby"
    HAZARD_SCHEMA: str = "flat"  # flat | nested (location: {latitude, longitude})

    # ── Push transport ──
    PUSH_TRANSPORT: str = "simulation"  # simulation | fcm
    PUSH_PRIORITY: str = "high"
    PUSH_SOUND: str = "default"
    ANDROID_CHANNEL_ID: str = "hazard_alerts"
    APNS_BADGE: int = 1
    PUSH_DRY_RUN: bool = False  # FCM validate-only mode

    # ── Firebase ──
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None  # service-account JSON
    FIREBASE_PROJECT_ID: Optional[str] = None

    # ── Recipient directory ──
    CANDIDATE_SOURCE: str = "memory"  # memory | firestore
    RESPONDERS_COLLECTION: str = "responders"
    USERS_COLLECTION: str = "users"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def needs_firebase(self) -> bool:
        """True if any configured backend talks to Firebase."""
        return self.PUSH_TRANSPORT == "fcm" or self.CANDIDATE_SOURCE == "firestore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
