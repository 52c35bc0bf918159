"""
Admin-side access to contact submissions stored in Appwrite.

All methods are synchronous (the Appwrite SDK is blocking); FastAPI runs the
admin routes in its threadpool.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from appwrite.exception import AppwriteException
from appwrite.id import ID
from appwrite.query import Query

from portfolio_api.core.errors import (
    ContactError,
    SubmissionNotFound,
    SubmissionValidationError,
)
from portfolio_api.schemas.contact import Submission
from portfolio_api.schemas.submission import (
    StatusLogEntry,
    StoredSubmission,
    SubmissionList,
    SubmissionStatus,
    StatusUpdateResult,
)
from portfolio_api.services.adapters.appwrite import (
    as_document,
    classify_appwrite_error,
    document_data,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
SEARCH_FIELDS = ("name", "email", "subject", "message")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SubmissionsService:
    def __init__(
        self,
        databases,
        database_id: str,
        collection_id: str,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.databases = databases
        self.database_id = database_id
        self.collection_id = collection_id
        self._clock = clock

    def _now_iso(self) -> str:
        return self._clock().isoformat()

    def _translate(self, exc: AppwriteException, document_id: Optional[str] = None) -> ContactError:
        if getattr(exc, "code", None) == 404 and document_id is not None:
            return SubmissionNotFound(f"Submission not found: {document_id}")
        return classify_appwrite_error(exc)

    # ------------------------------------------------------------------
    # create / read
    # ------------------------------------------------------------------

    def create_submission(
        self, submission: Submission, document_id: Optional[str] = None
    ) -> StoredSubmission:
        try:
            document = self.databases.create_document(
                database_id=self.database_id,
                collection_id=self.collection_id,
                document_id=document_id or ID.unique(),
                data=document_data(submission),
            )
        except AppwriteException as exc:
            raise self._translate(exc) from exc
        stored = StoredSubmission.from_document(as_document(document))
        logger.info("Submission created id=%s", stored.id)
        return stored

    def get_submission_by_id(self, document_id: str) -> StoredSubmission:
        try:
            document = self.databases.get_document(
                database_id=self.database_id,
                collection_id=self.collection_id,
                document_id=document_id,
            )
        except AppwriteException as exc:
            raise self._translate(exc, document_id) from exc
        return StoredSubmission.from_document(as_document(document))

    def list_submissions(
        self,
        limit: int = 10,
        offset: int = 0,
        status: Optional[SubmissionStatus] = None,
        search: Optional[str] = None,
    ) -> SubmissionList:
        """Newest first. `search` needs fulltext indexes on SEARCH_FIELDS."""
        queries = [
            Query.limit(max(1, min(limit, MAX_PAGE_SIZE))),
            Query.offset(max(0, offset)),
            Query.order_desc("$createdAt"),
        ]
        if status is not None:
            queries.append(Query.equal("status", SubmissionStatus(status).value))
        if search:
            queries.append(
                Query.or_queries([Query.search(field, search) for field in SEARCH_FIELDS])
            )

        try:
            response = as_document(
                self.databases.list_documents(
                    database_id=self.database_id,
                    collection_id=self.collection_id,
                    queries=queries,
                )
            )
        except AppwriteException as exc:
            raise self._translate(exc) from exc

        submissions = [
            StoredSubmission.from_document(as_document(doc))
            for doc in response.get("documents", [])
        ]
        return SubmissionList(submissions=submissions, total=response.get("total", len(submissions)))

    # ------------------------------------------------------------------
    # updates
    # ------------------------------------------------------------------

    def _update(self, document_id: str, data: dict) -> StoredSubmission:
        try:
            document = self.databases.update_document(
                database_id=self.database_id,
                collection_id=self.collection_id,
                document_id=document_id,
                data=data,
            )
        except AppwriteException as exc:
            raise self._translate(exc, document_id) from exc
        return StoredSubmission.from_document(as_document(document))

    def update_submission_status(
        self, document_id: str, status: SubmissionStatus, updated_by: str = "system"
    ) -> StatusUpdateResult:
        status = SubmissionStatus(status)
        current = self.get_submission_by_id(document_id)

        if current.status == status:
            logger.info("Status unchanged for submission %s (%s)", document_id, status.value)
            return StatusUpdateResult(
                id=document_id,
                message="Status unchanged",
                unchanged=True,
                previous_status=current.status,
                new_status=status,
            )

        entry = StatusLogEntry(
            previous_status=current.status,
            new_status=status,
            timestamp=self._now_iso(),
            updated_by=updated_by,
        )
        status_log = [e.to_storage() for e in current.status_log]
        status_log.append(entry.to_storage())

        updated = self._update(
            document_id,
            {"status": status.value, "statusLog": status_log, "lastUpdated": entry.timestamp},
        )
        logger.info(
            "Submission status updated id=%s %s -> %s by=%s",
            document_id,
            current.status.value,
            status.value,
            updated_by,
            extra={"event": "submission_status_updated", "submission_id": document_id},
        )
        return StatusUpdateResult(
            id=updated.id,
            message="Status updated successfully",
            previous_status=current.status,
            new_status=status,
            timestamp=entry.timestamp,
        )

    def update_submission_priority(self, document_id: str, priority: int) -> StoredSubmission:
        if not 1 <= priority <= 5:
            raise SubmissionValidationError(
                "Priority must be between 1 and 5",
                [{"field": "priority", "message": "Priority must be between 1 and 5"}],
            )
        logger.info("Updating submission priority id=%s priority=%s", document_id, priority)
        return self._update(document_id, {"priority": priority})

    def update_submission_tags(self, document_id: str, tags: Iterable[str]) -> StoredSubmission:
        cleaned: List[str] = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        logger.info("Updating submission tags id=%s tags=%s", document_id, cleaned)
        return self._update(document_id, {"tags": cleaned})

    def delete_submission(self, document_id: str) -> None:
        try:
            self.databases.delete_document(
                database_id=self.database_id,
                collection_id=self.collection_id,
                document_id=document_id,
            )
        except AppwriteException as exc:
            raise self._translate(exc, document_id) from exc
        logger.info(
            "Submission deleted id=%s",
            document_id,
            extra={"event": "submission_deleted", "submission_id": document_id},
        )
