import logging
from typing import Dict

from google.auth.exceptions import GoogleAuthError

from portfolio_api.core.errors import BackendError
from portfolio_api.services.adapters.appwrite import AppwriteAdapter, create_databases
from portfolio_api.services.adapters.base import AdapterReceipt, SubmissionAdapter
from portfolio_api.services.adapters.firebase import (
    FirebaseCallableAdapter,
    FirestoreAdapter,
    create_firestore_client,
)
from portfolio_api.services.adapters.mailto import MailtoAdapter, build_mailto_link

logger = logging.getLogger(__name__)

__all__ = [
    "AdapterReceipt",
    "AppwriteAdapter",
    "FirebaseCallableAdapter",
    "FirestoreAdapter",
    "MailtoAdapter",
    "SubmissionAdapter",
    "build_adapters",
    "build_mailto_link",
]


def build_adapters(settings) -> Dict[str, SubmissionAdapter]:
    """
    Build every backend the settings make usable, keyed by method name.

    The mailto adapter is always present. A backend whose configuration is
    missing is left out and requests for it fail with BACKEND_NOT_CONFIGURED.
    """
    adapters: Dict[str, SubmissionAdapter] = {
        "mailto": MailtoAdapter(settings.CONTACT_EMAIL),
    }

    if settings.appwrite_configured:
        adapters["appwrite"] = AppwriteAdapter(
            create_databases(settings),
            settings.APPWRITE_DATABASE_ID,
            settings.APPWRITE_CONTACT_COLLECTION_ID,
        )

    if settings.FIREBASE_PROJECT_ID:
        adapters["firebase"] = FirebaseCallableAdapter(
            settings.FIREBASE_PROJECT_ID,
            region=settings.FIREBASE_REGION,
            function_name=settings.FIREBASE_CALLABLE_NAME,
            timeout=settings.SUBMISSION_TIMEOUT_SECONDS,
        )

    if settings.FIREBASE_CREDENTIALS_FILE or settings.SUBMISSION_BACKEND == "firestore":
        try:
            adapters["firestore"] = FirestoreAdapter(
                create_firestore_client(settings), settings.FIRESTORE_COLLECTION
            )
        except (ValueError, OSError, GoogleAuthError, BackendError) as exc:
            logger.warning("Firestore backend unavailable: %s", exc)

    logger.info("Submission backends ready: %s", ", ".join(sorted(adapters)))
    return adapters
