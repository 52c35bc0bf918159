"""
Admin endpoints for reviewing contact submissions stored in Appwrite.

All routes require the X-API-Key header (see core.security.require_admin).
Handlers are sync; FastAPI runs them in its threadpool around the blocking SDK.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import Response

from portfolio_api.api import deps
from portfolio_api.schemas.submission import (
    PriorityUpdateRequest,
    StatusUpdateRequest,
    StatusUpdateResult,
    StoredSubmission,
    SubmissionList,
    SubmissionStatus,
    TagsUpdateRequest,
)
from portfolio_api.services.submissions_service import MAX_PAGE_SIZE, SubmissionsService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SubmissionList, response_model_by_alias=True)
def list_submissions(
    limit: int = Query(10, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    status_filter: Optional[SubmissionStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, min_length=1, max_length=100),
    service: SubmissionsService = Depends(deps.get_submissions_service),
):
    """List submissions, newest first, optionally filtered by status or text."""
    return service.list_submissions(
        limit=limit, offset=offset, status=status_filter, search=search
    )


@router.get("/{submission_id}", response_model=StoredSubmission, response_model_by_alias=True)
def get_submission(
    submission_id: str,
    service: SubmissionsService = Depends(deps.get_submissions_service),
):
    return service.get_submission_by_id(submission_id)


@router.patch(
    "/{submission_id}/status",
    response_model=StatusUpdateResult,
    response_model_by_alias=True,
)
def update_status(
    submission_id: str,
    body: StatusUpdateRequest,
    request: Request,
    service: SubmissionsService = Depends(deps.get_submissions_service),
):
    logger.info(
        "Admin status update id=%s status=%s request_id=%s",
        submission_id,
        body.status.value,
        getattr(request.state, "request_id", None),
    )
    return service.update_submission_status(submission_id, body.status, body.updated_by)


@router.patch(
    "/{submission_id}/priority",
    response_model=StoredSubmission,
    response_model_by_alias=True,
)
def update_priority(
    submission_id: str,
    body: PriorityUpdateRequest,
    service: SubmissionsService = Depends(deps.get_submissions_service),
):
    return service.update_submission_priority(submission_id, body.priority)


@router.patch(
    "/{submission_id}/tags",
    response_model=StoredSubmission,
    response_model_by_alias=True,
)
def update_tags(
    submission_id: str,
    body: TagsUpdateRequest,
    service: SubmissionsService = Depends(deps.get_submissions_service),
):
    return service.update_submission_tags(submission_id, body.tags)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_submission(
    submission_id: str,
    service: SubmissionsService = Depends(deps.get_submissions_service),
):
    service.delete_submission(submission_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
