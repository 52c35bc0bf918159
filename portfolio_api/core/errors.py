"""
=============================================================================
PORTFOLIO CONTACT API - ERROR HANDLING MODULE
=============================================================================
Error taxonomy for the contact submission pipeline plus the global exception
handlers installed on the FastAPI app.

Taxonomy:
- SubmissionValidationError: malformed user input (400, always surfaced)
- RateLimitExceeded: too many submissions (429, surfaced with reset time)
- TransientBackendError: network / timeout failures (retried, then generic 500)
- DocumentConflictError: backend document id collision (retried with new id)
- BackendSchemaError / BackendPermissionError / BackendConfigurationError:
  deployment problems (terminal, surfaced verbatim)
- UnknownBackendError: anything unclassified (logged, surfaced generically)

Usage:
    # In main.py
    from portfolio_api.core.errors import register_exception_handlers
    register_exception_handlers(app)
=============================================================================
"""

import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from portfolio_api.core.config import settings

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = (
    "We could not deliver your message. Please try again later or email me directly."
)

# The public contact form is posted cross-origin
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class ContactError(Exception):
    """Base class for every error the contact API raises on purpose."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    retryable = False

    def __init__(self, message: str, *, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_body(self) -> Dict[str, Any]:
        return {"success": False, "error": self.code, "message": self.message}


class SubmissionValidationError(ContactError):
    code = "VALIDATION_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["errors"] = self.errors
        return body


class RateLimitExceeded(ContactError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str, reset_time: str, retry_after: int):
        super().__init__(message)
        self.reset_time = reset_time
        self.retry_after = retry_after

    def to_body(self) -> Dict[str, Any]:
        body = super().to_body()
        body["resetTime"] = self.reset_time
        body["retryAfter"] = self.retry_after
        return body


class SubmissionNotFound(ContactError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND


class BackendError(ContactError):
    """A backend adapter call failed."""

    code = "BACKEND_ERROR"


class TransientBackendError(BackendError):
    code = "BACKEND_UNAVAILABLE"
    retryable = True


class NetworkError(TransientBackendError):
    code = "NETWORK_ERROR"


class BackendTimeoutError(TransientBackendError):
    code = "TIMEOUT"


class DocumentConflictError(BackendError):
    """Generated document id already exists; retry with a fresh id."""

    code = "DOCUMENT_CONFLICT"
    retryable = True


class BackendSchemaError(BackendError):
    code = "SCHEMA_MISMATCH"


class BackendPermissionError(BackendError):
    code = "PERMISSION_DENIED"


class BackendConfigurationError(BackendError):
    code = "BACKEND_NOT_CONFIGURED"


class UnknownBackendError(BackendError):
    code = "UNKNOWN_ERROR"


def validation_errors_from(exc_errors) -> List[Dict[str, str]]:
    """Flatten pydantic/FastAPI error dicts into field-level messages."""
    flattened = []
    for err in exc_errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        flattened.append(
            {
                "field": ".".join(loc) or "body",
                "message": str(err.get("msg", "Invalid value")).removeprefix("Value error, "),
            }
        )
    return flattened


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = validation_errors_from(exc.errors())
        logger.info(
            "Request validation failed on %s %s fields=%s",
            request.method,
            request.url.path,
            [e["field"] for e in errors],
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=SubmissionValidationError("Invalid request", errors).to_body(),
        )

    @app.exception_handler(ContactError)
    async def contact_error_handler(request: Request, exc: ContactError):
        if exc.status_code >= 500:
            logger.error(
                "Contact error on %s %s: %s (%s)",
                request.method,
                request.url.path,
                exc.message,
                exc.code,
            )
        headers = {}
        if isinstance(exc, RateLimitExceeded):
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_body(), headers=headers
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unhandled exceptions.

        - Logs the full traceback for debugging
        - Returns a generic error message to prevent info leakage
        - In debug mode, includes more details
        """
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}:\n"
            f"{traceback.format_exc()}"
        )

        content = {
            "success": False,
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
        }
        if settings.DEBUG:
            content["error_type"] = type(exc).__name__
            content["detail"] = str(exc)
            content["path"] = request.url.path
        return JSONResponse(status_code=500, content=content, headers=CORS_HEADERS)
