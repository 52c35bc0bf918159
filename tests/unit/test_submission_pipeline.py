"""Tests for the submission pipeline state machine."""
import time

import anyio

from portfolio_api.core.errors import (
    GENERIC_FAILURE_MESSAGE,
    BackendPermissionError,
    BackendSchemaError,
    DocumentConflictError,
    NetworkError,
)
from portfolio_api.services.submission_pipeline import (
    SubmissionContext,
    SubmissionState,
)
from tests.fakes import RecordingAdapter, RecordingNotifier

S = SubmissionState


def _submit(pipeline, payload, **context):
    ctx = SubmissionContext(client_ip="203.0.113.10", **context)
    return anyio.run(pipeline.submit, payload, ctx)


def test_success_path(pipeline, appwrite_adapter, notifier, valid_payload):
    outcome = _submit(pipeline, valid_payload, user_agent="pytest-agent")
    assert outcome.status_code == 200
    assert outcome.body == {
        "success": True,
        "id": "doc-1",
        "message": "Form submitted successfully",
    }
    assert outcome.history == [S.VALIDATING, S.RATE_LIMIT_CHECK, S.SPAM_CHECK, S.DISPATCHING, S.SUCCESS]

    stored = appwrite_adapter.submissions[0]
    assert stored.subject == "Project inquiry"
    assert stored.ip_address == "203.0.113.10"
    assert stored.user_agent == "pytest-agent"
    assert stored.source == "contact-form"
    assert len(notifier.calls) == 1


def test_defaults_fill_missing_optional_fields(pipeline, appwrite_adapter, valid_payload):
    payload = dict(valid_payload)
    del payload["subject"]
    _submit(pipeline, payload)
    stored = appwrite_adapter.submissions[0]
    assert stored.subject == "Contact Form Submission"
    assert stored.user_agent == "Unknown"
    assert stored.timestamp


def test_validation_failure_is_terminal(pipeline, appwrite_adapter, limiter):
    outcome = _submit(pipeline, {"name": "J", "email": "bad", "message": "hi"})
    assert outcome.status_code == 400
    assert outcome.body["error"] == "VALIDATION_ERROR"
    messages = {e["field"]: e["message"] for e in outcome.body["errors"]}
    assert messages == {
        "name": "Name must be at least 2 characters",
        "email": "Please enter a valid email address",
        "message": "Message must be at least 10 characters",
    }
    assert outcome.body["mailto"].startswith("mailto:owner@example.com?")
    assert outcome.history == [S.VALIDATING, S.FAILED]
    assert appwrite_adapter.calls == 0
    assert limiter.backend.keys() == []


def test_non_object_body_is_rejected(pipeline):
    outcome = _submit(pipeline, ["not", "an", "object"])
    assert outcome.status_code == 400
    assert outcome.body["errors"][0]["field"] == "body"


def test_rate_limited_by_ip(pipeline, appwrite_adapter, valid_payload):
    for i in range(5):
        payload = dict(valid_payload, email=f"jane{i}@example.com")
        assert _submit(pipeline, payload).status_code == 200

    outcome = _submit(pipeline, dict(valid_payload, email="jane9@example.com"))
    assert outcome.status_code == 429
    assert outcome.body["error"] == "RATE_LIMIT_EXCEEDED"
    assert outcome.body["retryAfter"] == 60
    assert outcome.body["resetTime"]
    assert outcome.headers == {"Retry-After": "60"}
    assert "mailto" in outcome.body
    assert appwrite_adapter.calls == 5


def test_rate_limited_by_email_across_ips(pipeline, valid_payload):
    for i in range(5):
        ctx = SubmissionContext(client_ip=f"198.51.100.{i}")
        assert anyio.run(pipeline.submit, valid_payload, ctx).status_code == 200

    # Email keys are case-insensitive
    ctx = SubmissionContext(client_ip="192.0.2.1")
    outcome = anyio.run(pipeline.submit, dict(valid_payload, email="JANE@example.com"), ctx)
    assert outcome.status_code == 429


def test_rate_limited_requests_are_not_counted(pipeline, limiter, valid_payload):
    for _ in range(7):
        _submit(pipeline, valid_payload)
    assert limiter.check("ip:203.0.113.10").remaining == 0
    assert limiter.backend.load("rate_limit_ip:203.0.113.10").count == 5


def test_honeypot_returns_fabricated_success(pipeline, appwrite_adapter, notifier, valid_payload):
    outcome = _submit(pipeline, dict(valid_payload, honeypot="gotcha"))
    assert outcome.status_code == 200
    assert outcome.body["success"] is True
    assert len(outcome.body["id"]) == 20
    assert outcome.body["message"] == "Form submitted successfully"
    assert appwrite_adapter.calls == 0
    assert notifier.calls == []
    assert S.DISPATCHING not in outcome.history


def test_transient_failures_are_retried(pipeline, appwrite_adapter, valid_payload):
    appwrite_adapter.failures = [NetworkError("reset"), NetworkError("reset")]
    outcome = _submit(pipeline, valid_payload)
    assert outcome.status_code == 200
    assert outcome.attempts == 3
    assert outcome.history.count(S.RETRYING) == 2


def test_retries_exhausted_give_generic_message(pipeline, appwrite_adapter, valid_payload):
    appwrite_adapter.failures = [NetworkError("reset") for _ in range(4)]
    outcome = _submit(pipeline, valid_payload)
    assert outcome.status_code == 500
    assert outcome.body["error"] == "NETWORK_ERROR"
    assert outcome.body["message"] == GENERIC_FAILURE_MESSAGE
    assert outcome.attempts == 4
    assert outcome.history[-1] == S.FAILED
    assert "Project%20inquiry" in outcome.body["mailto"]


def test_schema_error_surfaced_verbatim(pipeline, appwrite_adapter, valid_payload):
    appwrite_adapter.failures = [BackendSchemaError("Unknown attribute: phone")]
    outcome = _submit(pipeline, valid_payload)
    assert outcome.status_code == 500
    assert outcome.body["message"] == "Unknown attribute: phone"
    assert outcome.attempts == 1


def test_permission_error_is_terminal(pipeline, appwrite_adapter, valid_payload):
    appwrite_adapter.failures = [BackendPermissionError("Missing scope documents.write")]
    outcome = _submit(pipeline, valid_payload)
    assert outcome.body["error"] == "PERMISSION_DENIED"
    assert appwrite_adapter.calls == 1


def test_conflict_retried_with_new_attempt(pipeline, appwrite_adapter, valid_payload):
    appwrite_adapter.failures = [DocumentConflictError("Document already exists")]
    outcome = _submit(pipeline, valid_payload)
    assert outcome.status_code == 200
    assert outcome.body["id"] == "doc-2"


def test_unconfigured_method(pipeline, valid_payload):
    outcome = _submit(pipeline, dict(valid_payload, method="firestore"))
    assert outcome.status_code == 500
    assert outcome.body["error"] == "BACKEND_NOT_CONFIGURED"


def test_forced_method_overrides_payload(pipeline, appwrite_adapter, valid_payload):
    outcome = _submit(pipeline, dict(valid_payload, method="mailto"), forced_method="appwrite")
    assert outcome.method == "appwrite"
    assert appwrite_adapter.calls == 1


def test_mailto_method_returns_link(pipeline, notifier, valid_payload):
    outcome = _submit(pipeline, dict(valid_payload, method="mailto"))
    assert outcome.status_code == 200
    assert outcome.body["id"].startswith("mailto-")
    assert outcome.body["mailto"].startswith("mailto:owner@example.com?subject=Contact%20Form")
    assert notifier.calls == []


def test_notification_failure_does_not_change_outcome(pipeline, valid_payload):
    pipeline.notifier = RecordingNotifier(error=RuntimeError("smtp down"))
    outcome = _submit(pipeline, valid_payload)
    assert outcome.status_code == 200


class SlowAdapter(RecordingAdapter):
    def submit(self, submission):
        time.sleep(0.3)
        return super().submit(submission)


def test_each_attempt_is_raced_against_timeout(pipeline, valid_payload):
    slow = SlowAdapter("appwrite")
    pipeline.adapters["appwrite"] = slow
    pipeline.timeout_seconds = 0.05
    pipeline.retry_policy.max_attempts = 2
    outcome = _submit(pipeline, valid_payload)
    assert outcome.status_code == 500
    assert outcome.body["error"] == "TIMEOUT"
    assert outcome.attempts == 2
