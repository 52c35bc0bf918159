"""
=============================================================================
PORTFOLIO CONTACT API - SUBMISSION PIPELINE
=============================================================================
One parameterised pipeline shared by every contact endpoint:

    VALIDATING -> RATE_LIMIT_CHECK -> SPAM_CHECK -> DISPATCHING
        -> SUCCESS | RETRYING (-> DISPATCHING) | FAILED

The pipeline never raises for expected failures; it returns a
SubmissionOutcome carrying the HTTP status, JSON body and headers the route
should answer with.
=============================================================================
"""
from __future__ import annotations

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from portfolio_api.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    BackendConfigurationError,
    BackendPermissionError,
    BackendSchemaError,
    BackendTimeoutError,
    ContactError,
    RateLimitExceeded,
    SubmissionValidationError,
    validation_errors_from,
)
from portfolio_api.core.rate_limiter import FixedWindowRateLimiter, RateLimitStatus
from portfolio_api.core.retry import RetryPolicy
from portfolio_api.schemas.contact import ContactRequest, ContactResponse, Submission
from portfolio_api.services.adapters import (
    AdapterReceipt,
    SubmissionAdapter,
    build_mailto_link,
)
from portfolio_api.services.spam_detector import (
    DEFAULT_OPTIONS,
    SpamDetectionOptions,
    detect_spam,
)

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Form submitted successfully"
RATE_LIMIT_MESSAGE = "Too many submissions. Please try again later."

# Terminal errors whose message is safe and useful to show as-is
_VERBATIM_ERRORS = (BackendSchemaError, BackendPermissionError, BackendConfigurationError)


class SubmissionState(str, Enum):
    VALIDATING = "validating"
    RATE_LIMIT_CHECK = "rate_limit_check"
    SPAM_CHECK = "spam_check"
    DISPATCHING = "dispatching"
    RETRYING = "retrying"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class SubmissionContext:
    """Request-derived facts the payload cannot be trusted to supply."""

    client_ip: str = "unknown"
    user_agent: Optional[str] = None
    source: str = "contact-form"
    forced_method: Optional[str] = None


@dataclass
class SubmissionOutcome:
    state: SubmissionState
    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)
    history: List[SubmissionState] = field(default_factory=list)
    attempts: int = 0
    method: Optional[str] = None
    submission: Optional[Submission] = None

    @property
    def success(self) -> bool:
        return self.state == SubmissionState.SUCCESS


class SubmissionPipeline:
    def __init__(
        self,
        rate_limiter: FixedWindowRateLimiter,
        adapters: Mapping[str, SubmissionAdapter],
        *,
        contact_email: str,
        retry_policy: Optional[RetryPolicy] = None,
        spam_options: SpamDetectionOptions = DEFAULT_OPTIONS,
        default_method: str = "mailto",
        notifier=None,
        timeout_seconds: float = 10.0,
    ):
        self.rate_limiter = rate_limiter
        self.adapters = dict(adapters)
        self.contact_email = contact_email
        self.retry_policy = retry_policy or RetryPolicy()
        self.spam_options = spam_options
        self.default_method = default_method
        self.notifier = notifier
        self.timeout_seconds = timeout_seconds

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _mailto_for(self, payload: Mapping[str, Any]) -> str:
        def text(key: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else ""

        return build_mailto_link(
            self.contact_email,
            name=text("name"),
            email=text("email"),
            subject=text("subject") or None,
            message=text("message"),
        )

    def _failure(
        self,
        error: ContactError,
        status_code: int,
        history: List[SubmissionState],
        payload: Mapping[str, Any],
        *,
        message: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        attempts: int = 0,
        method: Optional[str] = None,
    ) -> SubmissionOutcome:
        body = error.to_body()
        if message is not None:
            body["message"] = message
        body["mailto"] = self._mailto_for(payload)
        history.append(SubmissionState.FAILED)
        return SubmissionOutcome(
            state=SubmissionState.FAILED,
            status_code=status_code,
            body=body,
            headers=headers or {},
            history=history,
            attempts=attempts,
            method=method,
        )

    def _check_rate_limits(self, keys: List[str]) -> Optional[RateLimitStatus]:
        limited = [s for s in (self.rate_limiter.check(k) for k in keys) if s.is_limited]
        if limited:
            return max(limited, key=lambda s: s.ms_before_next)
        for key in keys:
            self.rate_limiter.increment(key)
        return None

    async def _attempt(self, adapter: SubmissionAdapter, submission: Submission) -> AdapterReceipt:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(adapter.submit, submission),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            # The worker thread keeps running; only the wait is abandoned
            raise BackendTimeoutError(
                f"Backend did not answer within {self.timeout_seconds:g}s"
            ) from exc

    async def _notify(self, submission: Submission, receipt: AdapterReceipt) -> None:
        if self.notifier is None or receipt.method == "mailto":
            return
        try:
            await self.notifier.notify(submission, receipt.id)
        except Exception as exc:
            logger.warning(
                "Notification failed id=%s error=%s",
                receipt.id,
                exc,
                extra={"event": "notification_failed", "submission_id": receipt.id},
            )

    # ------------------------------------------------------------------
    # main entry point
    # ------------------------------------------------------------------

    async def submit(
        self, payload: Mapping[str, Any], context: Optional[SubmissionContext] = None
    ) -> SubmissionOutcome:
        context = context or SubmissionContext()
        history: List[SubmissionState] = [SubmissionState.VALIDATING]
        if not isinstance(payload, Mapping):
            payload = {}
            error = SubmissionValidationError(
                "Invalid request",
                [{"field": "body", "message": "Request body must be a JSON object"}],
            )
            return self._failure(error, 400, history, payload)

        try:
            request = ContactRequest.model_validate(dict(payload))
        except ValidationError as exc:
            errors = validation_errors_from(exc.errors())
            logger.info(
                "Contact submission rejected by validation fields=%s",
                [e["field"] for e in errors],
            )
            return self._failure(
                SubmissionValidationError("Validation failed", errors), 400, history, payload
            )

        history.append(SubmissionState.RATE_LIMIT_CHECK)
        limited = self._check_rate_limits(
            [f"ip:{context.client_ip}", f"email:{request.email.lower()}"]
        )
        if limited is not None:
            logger.warning(
                "Contact submission rate limited retry_after=%ss",
                limited.retry_after_seconds,
                extra={"event": "contact_rate_limited"},
            )
            error = RateLimitExceeded(
                RATE_LIMIT_MESSAGE,
                reset_time=limited.reset_time.isoformat(),
                retry_after=limited.retry_after_seconds,
            )
            return self._failure(
                error,
                429,
                history,
                payload,
                headers={"Retry-After": str(limited.retry_after_seconds)},
            )

        history.append(SubmissionState.SPAM_CHECK)
        spam = detect_spam(request.model_dump(), self.spam_options)
        if spam.is_spam:
            fake_id = secrets.token_hex(10)
            logger.warning(
                "Spam submission discarded score=%s reasons=%s",
                spam.score,
                "; ".join(spam.reasons),
                extra={"event": "contact_spam_discarded", "spam_score": spam.score},
            )
            history.append(SubmissionState.SUCCESS)
            return SubmissionOutcome(
                state=SubmissionState.SUCCESS,
                status_code=200,
                body=ContactResponse(
                    success=True, id=fake_id, message=SUCCESS_MESSAGE
                ).model_dump(exclude_none=True),
                history=history,
            )

        submission = Submission.from_request(
            request,
            ip_address=context.client_ip,
            user_agent=context.user_agent,
            default_source=context.source,
        )
        method = context.forced_method or request.method or self.default_method
        history.append(SubmissionState.DISPATCHING)

        adapter = self.adapters.get(method)
        if adapter is None:
            error = BackendConfigurationError(
                f"Submission method '{method}' is not configured on this server"
            )
            logger.error("No adapter for submission method %s", method)
            return self._failure(error, 500, history, payload, method=method)

        def on_retry(attempt: int, error: ContactError, delay: float) -> None:
            history.append(SubmissionState.RETRYING)
            history.append(SubmissionState.DISPATCHING)

        result = await self.retry_policy.execute(
            lambda attempt: self._attempt(adapter, submission), on_retry=on_retry
        )

        if not result.ok:
            error = result.error
            if isinstance(error, _VERBATIM_ERRORS):
                message = error.message
            else:
                message = GENERIC_FAILURE_MESSAGE
            logger.error(
                "Contact submission failed method=%s attempts=%s error=%s",
                method,
                result.attempts,
                error.code,
                extra={"event": "contact_submission_failed", "method": method},
            )
            return self._failure(
                error,
                500,
                history,
                payload,
                message=message,
                attempts=result.attempts,
                method=method,
            )

        receipt: AdapterReceipt = result.value
        logger.info(
            "AUDIT: Contact submission accepted id=%s method=%s attempts=%s",
            receipt.id,
            method,
            result.attempts,
            extra={"event": "contact_submission_accepted", "method": method},
        )
        await self._notify(submission, receipt)

        history.append(SubmissionState.SUCCESS)
        return SubmissionOutcome(
            state=SubmissionState.SUCCESS,
            status_code=200,
            body=ContactResponse(
                success=True, id=receipt.id, message=receipt.message, mailto=receipt.mailto
            ).model_dump(exclude_none=True),
            history=history,
            attempts=result.attempts,
            method=method,
            submission=submission,
        )


def build_pipeline(settings, rate_limiter, adapters, notifier=None) -> SubmissionPipeline:
    return SubmissionPipeline(
        rate_limiter,
        adapters,
        contact_email=settings.CONTACT_EMAIL,
        retry_policy=RetryPolicy(
            max_attempts=settings.SUBMISSION_MAX_RETRIES + 1,
            base_delay=settings.SUBMISSION_BACKOFF_SECONDS,
        ),
        spam_options=SpamDetectionOptions(
            threshold=settings.SPAM_SCORE_THRESHOLD,
            honeypot_field=settings.HONEYPOT_FIELD,
        ),
        default_method=settings.SUBMISSION_BACKEND,
        notifier=notifier,
        timeout_seconds=settings.SUBMISSION_TIMEOUT_SECONDS,
    )
