"""Test doubles shared by the unit tests."""
from typing import List

from appwrite.exception import AppwriteException

from portfolio_api.core.errors import ContactError
from portfolio_api.schemas.contact import Submission
from portfolio_api.services.adapters import AdapterReceipt, SubmissionAdapter


class FakeClock:
    """Controllable replacement for time.time (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: int) -> None:
        self.now += ms / 1000


class RecordingAdapter(SubmissionAdapter):
    """Adapter that records submissions and can be scripted to fail."""

    def __init__(self, method: str = "appwrite", failures: List[ContactError] = None):
        self.method = method
        self.failures = list(failures or [])
        self.submissions: List[Submission] = []
        self.calls = 0

    def submit(self, submission: Submission) -> AdapterReceipt:
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        self.submissions.append(submission)
        return AdapterReceipt(id=f"doc-{self.calls}", method=self.method)


class RecordingNotifier:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    async def notify(self, submission, submission_id):
        self.calls.append((submission, submission_id))
        if self.error is not None:
            raise self.error
        return "queued"


class FakeDatabases:
    """In-memory stand-in for appwrite.services.databases.Databases."""

    def __init__(self):
        self.documents = {}
        self.last_queries = None
        self._tick = 0

    def _meta(self, document_id):
        self._tick += 1
        return {
            "$id": document_id,
            "$createdAt": f"2026-01-01T00:00:{self._tick:02d}.000+00:00",
            "$updatedAt": f"2026-01-01T00:00:{self._tick:02d}.000+00:00",
        }

    def create_document(self, database_id, collection_id, document_id, data, permissions=None):
        if document_id in self.documents:
            raise AppwriteException(
                "Document with the requested ID already exists.", 409, "document_already_exists"
            )
        document = {**self._meta(document_id), **data}
        self.documents[document_id] = document
        return dict(document)

    def get_document(self, database_id, collection_id, document_id, queries=None):
        if document_id not in self.documents:
            raise AppwriteException(
                "Document with the requested ID could not be found.", 404, "document_not_found"
            )
        return dict(self.documents[document_id])

    def update_document(self, database_id, collection_id, document_id, data=None, permissions=None):
        document = self.get_document(database_id, collection_id, document_id)
        document.update(data or {})
        self.documents[document_id] = document
        return dict(document)

    def delete_document(self, database_id, collection_id, document_id):
        self.get_document(database_id, collection_id, document_id)
        del self.documents[document_id]
        return {}

    def list_documents(self, database_id, collection_id, queries=None):
        self.last_queries = queries
        documents = sorted(
            self.documents.values(), key=lambda d: d["$createdAt"], reverse=True
        )
        return {"total": len(documents), "documents": [dict(d) for d in documents]}
