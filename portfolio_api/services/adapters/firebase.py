"""
Firebase backends.

FirebaseCallableAdapter posts to an HTTPS callable Cloud Function using the
callable wire protocol (`{"data": ...}` in, `{"result": ...}` or
`{"error": {"status": ...}}` out). FirestoreAdapter writes the document
directly with the Admin SDK.
"""
from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
import requests
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions

from portfolio_api.core.errors import (
    BackendConfigurationError,
    BackendError,
    BackendPermissionError,
    BackendSchemaError,
    DocumentConflictError,
    NetworkError,
    TransientBackendError,
    UnknownBackendError,
)
from portfolio_api.schemas.contact import Submission
from portfolio_api.services.adapters.base import (
    AdapterReceipt,
    SubmissionAdapter,
    classify_unknown,
)

logger = logging.getLogger(__name__)

# Canonical status strings of the callable protocol
_CALLABLE_STATUS = {
    "UNAVAILABLE": NetworkError,
    "DEADLINE_EXCEEDED": TransientBackendError,
    "RESOURCE_EXHAUSTED": TransientBackendError,
    "INTERNAL": TransientBackendError,
    "ALREADY_EXISTS": DocumentConflictError,
    "INVALID_ARGUMENT": BackendSchemaError,
    "FAILED_PRECONDITION": BackendSchemaError,
    "PERMISSION_DENIED": BackendPermissionError,
    "UNAUTHENTICATED": BackendPermissionError,
    "NOT_FOUND": BackendConfigurationError,
}


def classify_callable_error(http_status: int, payload: Optional[dict]) -> BackendError:
    error = (payload or {}).get("error") or {}
    status = error.get("status") or ""
    message = error.get("message") or f"Cloud Function returned HTTP {http_status}"
    error_cls = _CALLABLE_STATUS.get(status)
    if error_cls is not None:
        return error_cls(message)
    if http_status >= 500 or http_status == 429:
        return TransientBackendError(message)
    return UnknownBackendError(message)


class FirebaseCallableAdapter(SubmissionAdapter):
    method = "firebase"

    def __init__(
        self,
        project_id: str,
        region: str = "us-central1",
        function_name: str = "submitContactForm",
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ):
        if not project_id:
            raise BackendConfigurationError("FIREBASE_PROJECT_ID is not set")
        self.url = f"https://{region}-{project_id}.cloudfunctions.net/{function_name}"
        self.session = session or requests.Session()
        self.timeout = timeout

    def submit(self, submission: Submission) -> AdapterReceipt:
        try:
            response = self.session.post(
                self.url,
                json={"data": submission.to_document()},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise classify_unknown(exc) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.status_code != 200 or not payload or "result" not in payload:
            raise classify_callable_error(response.status_code, payload)

        result = payload["result"] or {}
        document_id = result.get("id") or result.get("documentId")
        if not document_id:
            raise UnknownBackendError("Cloud Function response carried no document id")
        logger.info("Contact form stored via Firebase function id=%s", document_id)
        return AdapterReceipt(
            id=document_id,
            method=self.method,
            message=result.get("message") or "Form submitted successfully",
        )


def classify_google_error(exc: google_exceptions.GoogleAPICallError) -> BackendError:
    message = getattr(exc, "message", None) or str(exc)
    if isinstance(exc, google_exceptions.AlreadyExists):
        return DocumentConflictError(message)
    if isinstance(exc, (google_exceptions.PermissionDenied, google_exceptions.Unauthenticated)):
        return BackendPermissionError(message)
    if isinstance(exc, (google_exceptions.InvalidArgument, google_exceptions.FailedPrecondition)):
        return BackendSchemaError(message)
    if isinstance(exc, google_exceptions.NotFound):
        return BackendConfigurationError(message)
    if isinstance(
        exc,
        (
            google_exceptions.ServiceUnavailable,
            google_exceptions.DeadlineExceeded,
            google_exceptions.TooManyRequests,
            google_exceptions.InternalServerError,
        ),
    ):
        return TransientBackendError(message)
    return UnknownBackendError(message)


def create_firestore_client(settings):
    """Initialise (once) the default firebase_admin app and return a client."""
    try:
        app = firebase_admin.get_app()
    except ValueError:
        if settings.FIREBASE_CREDENTIALS_FILE:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_FILE)
        else:
            cred = credentials.ApplicationDefault()
        options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
        app = firebase_admin.initialize_app(cred, options)
    return firestore.client(app)


class FirestoreAdapter(SubmissionAdapter):
    method = "firestore"

    def __init__(self, client, collection: str = "contact_submissions"):
        self.client = client
        self.collection = collection

    def submit(self, submission: Submission) -> AdapterReceipt:
        data = submission.to_document()
        data["status"] = "new"
        data["timestamp"] = firestore.SERVER_TIMESTAMP
        try:
            _, doc_ref = self.client.collection(self.collection).add(data)
        except google_exceptions.GoogleAPICallError as exc:
            raise classify_google_error(exc) from exc
        except Exception as exc:
            raise classify_unknown(exc) from exc

        logger.info("Contact form stored in Firestore id=%s", doc_ref.id)
        return AdapterReceipt(id=doc_ref.id, method=self.method)
