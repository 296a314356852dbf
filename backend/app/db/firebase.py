"""
Firebase Admin App
==================
Initialises the Firebase Admin SDK once, on first use, for Cloud Messaging.

FIREBASE_ADMIN_JSON holds either the service-account JSON itself (hosted
deployments where files are awkward) or a path to the JSON file (local dev).
"""

import json
from functools import lru_cache

import firebase_admin
from firebase_admin import credentials

from app.config import get_settings


@lru_cache
def get_firebase_app() -> firebase_admin.App:
    raw_json = get_settings().firebase_admin_json.strip()
    if not raw_json:
        raise RuntimeError("FIREBASE_ADMIN_JSON is not set in environment variables")

    try:
        return firebase_admin.get_app()
    except ValueError:
        pass  # default app not initialised yet

    if raw_json.startswith("{"):
        cred = credentials.Certificate(json.loads(raw_json))
    else:
        cred = credentials.Certificate(raw_json)
    return firebase_admin.initialize_app(cred)
