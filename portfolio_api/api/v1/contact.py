"""
Public contact form endpoints.

Three paths share one pipeline and differ only in which backend they pin:
- /api/contact-unified picks the request's `method` (or the configured default)
- /api/contact-appwrite and /api/contact-form always write to Appwrite

They answer cross-origin callers with explicit CORS headers, 204 on OPTIONS
and a JSON 405 for any other method.
"""
import logging
from json import JSONDecodeError
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from portfolio_api.api import deps
from portfolio_api.core.errors import CORS_HEADERS
from portfolio_api.core.rate_limiter import get_client_ip
from portfolio_api.schemas.contact import ContactResponse
from portfolio_api.schemas.error import ERROR_RESPONSES
from portfolio_api.services.submission_pipeline import (
    SubmissionContext,
    SubmissionPipeline,
)

logger = logging.getLogger(__name__)

router = APIRouter()

PREFLIGHT_MAX_AGE = "86400"


def _cors_json(status_code: int, body: dict, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=body, headers={**CORS_HEADERS, **(headers or {})}
    )


async def _read_json(request: Request):
    try:
        return await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        return None


async def _handle_submission(
    request: Request,
    pipeline: SubmissionPipeline,
    trusted_networks: list,
    *,
    source: str,
    forced_method: Optional[str] = None,
) -> JSONResponse:
    payload = await _read_json(request)
    context = SubmissionContext(
        client_ip=get_client_ip(request, trusted_networks),
        user_agent=request.headers.get("User-Agent"),
        source=source,
        forced_method=forced_method,
    )
    outcome = await pipeline.submit(payload, context)
    logger.info(
        "Contact endpoint %s finished state=%s status=%s attempts=%s",
        request.url.path,
        outcome.state.value,
        outcome.status_code,
        outcome.attempts,
    )
    return _cors_json(outcome.status_code, outcome.body, outcome.headers)


def _register_contact_path(path: str, *, source: str, forced_method: Optional[str]) -> None:
    @router.post(
        path,
        response_model=ContactResponse,
        responses=ERROR_RESPONSES,
        summary=f"Submit the contact form ({source})",
        name=f"{source}-submit",
    )
    async def submit(
        request: Request,
        pipeline: SubmissionPipeline = Depends(deps.get_pipeline),
        trusted_networks: list = Depends(deps.get_trusted_networks),
    ):
        return await _handle_submission(
            request, pipeline, trusted_networks, source=source, forced_method=forced_method
        )

    @router.options(path, include_in_schema=False, name=f"{source}-preflight")
    async def preflight() -> Response:
        return Response(
            status_code=status.HTTP_204_NO_CONTENT,
            headers={**CORS_HEADERS, "Access-Control-Max-Age": PREFLIGHT_MAX_AGE},
        )

    @router.api_route(
        path,
        methods=["GET", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
        name=f"{source}-not-allowed",
    )
    async def method_not_allowed() -> JSONResponse:
        return _cors_json(
            status.HTTP_405_METHOD_NOT_ALLOWED,
            {"success": False, "error": "METHOD_NOT_ALLOWED", "message": "Method not allowed"},
            {"Allow": "POST, OPTIONS"},
        )


_register_contact_path("/contact-unified", source="contact-unified", forced_method=None)
_register_contact_path("/contact-appwrite", source="contact-appwrite", forced_method="appwrite")
_register_contact_path("/contact-form", source="contact-form", forced_method="appwrite")
