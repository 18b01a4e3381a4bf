"""Firebase configuration and initialization"""

import firebase_admin
from firebase_admin import credentials, firestore_async
import json
import logging
from typing import Optional

from .config import settings

logger = logging.getLogger(__name__)

# Firebase Admin SDK app, created lazily
firebase_app: Optional[firebase_admin.App] = None


def initialize_firebase() -> firebase_admin.App:
    """Initialize Firebase Admin SDK"""
    global firebase_app

    if firebase_app:
        return firebase_app

    # Try to load credentials from environment variable
    if settings.FIREBASE_CREDENTIALS_JSON:
        cred_dict = json.loads(settings.FIREBASE_CREDENTIALS_JSON)
        cred = credentials.Certificate(cred_dict)
    # Or from file path
    elif settings.FIREBASE_CREDENTIALS_PATH:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    else:
        raise ValueError("Firebase credentials not configured")

    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    firebase_app = firebase_admin.initialize_app(cred, options)
    logger.info("Firebase Admin SDK initialized successfully")
    return firebase_app


def get_firestore_client():
    """Async Firestore client bound to the initialized app"""
    return firestore_async.client(initialize_firebase())
