"""
Firebase app lifecycle.

The hosting process creates one named firebase_admin App at startup and
passes it to the FCM transport and the Firestore candidate source. The
default (global) app is never touched.
"""

from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from backend.hazard_dispatch.core.config import Settings, settings as app_settings

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "hazard-dispatch"


def create_firebase_app(config: Optional[Settings] = None) -> firebase_admin.App:
    """
    Initialise a named Firebase app from settings.

    Uses the service-account file at FIREBASE_CREDENTIALS_PATH when set,
    otherwise Application Default Credentials.
    """
    config = config or app_settings

    if config.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(config.FIREBASE_CREDENTIALS_PATH)
    else:
        cred = credentials.ApplicationDefault()

    options = {"projectId": config.FIREBASE_PROJECT_ID} if config.FIREBASE_PROJECT_ID else None
    app = firebase_admin.initialize_app(cred, options, name=FIREBASE_APP_NAME)
    logger.info(
        "Firebase app '%s' initialised (project=%s)",
        FIREBASE_APP_NAME, config.FIREBASE_PROJECT_ID or "from credentials",
    )
    return app


def close_firebase_app(app: Optional[firebase_admin.App]) -> None:
    """Release a Firebase app created by create_firebase_app."""
    if app is not None:
        firebase_admin.delete_app(app)
        logger.info("Firebase app '%s' closed", app.name)
