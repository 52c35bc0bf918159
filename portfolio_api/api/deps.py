from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import HTTPException

from portfolio_api.core.rate_limiter import FixedWindowRateLimiter
from portfolio_api.services.submission_pipeline import SubmissionPipeline
from portfolio_api.services.submissions_service import SubmissionsService


def get_pipeline(request: Request) -> SubmissionPipeline:
    """
    Submission pipeline built in the app lifespan.

    Usage:
        @router.post("/contact")
        async def contact(pipeline: SubmissionPipeline = Depends(get_pipeline)):
            ...
    """
    return request.app.state.pipeline


def get_rate_limiter(request: Request) -> Optional[FixedWindowRateLimiter]:
    return getattr(request.app.state, "rate_limiter", None)


def get_trusted_networks(request: Request) -> list:
    return request.app.state.trusted_networks


def get_submissions_service(request: Request) -> SubmissionsService:
    service = getattr(request.app.state, "submissions_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Appwrite is not configured on this server.",
        )
    return service
