"""Appwrite database adapter: one `create_document` call per submission."""
from __future__ import annotations

import logging
from typing import Any, Dict

from appwrite.client import Client
from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.services.databases import Databases

from portfolio_api.core.errors import (
    BackendConfigurationError,
    BackendError,
    BackendPermissionError,
    BackendSchemaError,
    DocumentConflictError,
    NetworkError,
    UnknownBackendError,
)
from portfolio_api.schemas.contact import Submission
from portfolio_api.schemas.submission import SubmissionStatus
from portfolio_api.services.adapters.base import (
    AdapterReceipt,
    SubmissionAdapter,
    classify_unknown,
)

logger = logging.getLogger(__name__)

_SCHEMA_ERROR_TYPES = {
    "document_invalid_structure",
    "attribute_not_available",
    "attribute_value_invalid",
}


def create_databases(settings) -> Databases:
    """Build an Appwrite Databases service from settings (server API key)."""
    if not settings.appwrite_configured:
        raise BackendConfigurationError(
            "Appwrite is not configured (APPWRITE_PROJECT_ID / APPWRITE_API_KEY)"
        )
    client = Client()
    client.set_endpoint(settings.APPWRITE_ENDPOINT)
    client.set_project(settings.APPWRITE_PROJECT_ID)
    client.set_key(settings.APPWRITE_API_KEY.get_secret_value())
    logger.info(
        "Appwrite client configured endpoint=%s database=%s collection=%s",
        settings.APPWRITE_ENDPOINT,
        settings.APPWRITE_DATABASE_ID,
        settings.APPWRITE_CONTACT_COLLECTION_ID,
    )
    return Databases(client)


def as_document(document: Any) -> Dict[str, Any]:
    """SDK releases return either plain dicts or model objects."""
    if isinstance(document, dict):
        return document
    if hasattr(document, "to_dict"):
        return document.to_dict()
    if hasattr(document, "model_dump"):
        return document.model_dump(by_alias=True)
    return dict(document)


def classify_appwrite_error(exc: AppwriteException) -> BackendError:
    code = getattr(exc, "code", None)
    err_type = getattr(exc, "type", None) or ""
    message = getattr(exc, "message", None) or str(exc)

    if code == 409 and err_type == "document_already_exists":
        return DocumentConflictError(message)
    if "Unknown attribute" in message or err_type in _SCHEMA_ERROR_TYPES:
        return BackendSchemaError(
            "Form submission failed due to schema mismatch. "
            f"Please try again or contact support. ({message})"
        )
    if code in (401, 403):
        return BackendPermissionError(message)
    if code == 404:
        return BackendConfigurationError(message)
    # The SDK wraps connection failures in an AppwriteException without a code
    if not code or code in (408, 429) or code >= 500:
        return NetworkError(message)
    return UnknownBackendError(message)


def document_data(submission: Submission) -> Dict[str, Any]:
    """Document body for a new submission, shared by the adapter and admin service."""
    data = submission.to_document()
    data["status"] = SubmissionStatus.NEW.value
    return data


class AppwriteAdapter(SubmissionAdapter):
    method = "appwrite"

    def __init__(self, databases: Databases, database_id: str, collection_id: str):
        self.databases = databases
        self.database_id = database_id
        self.collection_id = collection_id

    def submit(self, submission: Submission) -> AdapterReceipt:
        try:
            document = self.databases.create_document(
                database_id=self.database_id,
                collection_id=self.collection_id,
                document_id=ID.unique(),
                data=document_data(submission),
            )
        except AppwriteException as exc:
            raise classify_appwrite_error(exc) from exc
        except Exception as exc:
            raise classify_unknown(exc) from exc

        document_id = as_document(document)["$id"]
        logger.info("Contact form stored in Appwrite id=%s", document_id)
        return AdapterReceipt(id=document_id, method=self.method)
