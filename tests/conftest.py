from typing import Dict

import pytest
from fastapi.testclient import TestClient

from portfolio_api.core.rate_limiter import FixedWindowRateLimiter, InMemoryBackend
from portfolio_api.core.retry import RetryPolicy
from portfolio_api.main import create_app
from portfolio_api.services.adapters import MailtoAdapter, SubmissionAdapter
from portfolio_api.services.submission_pipeline import SubmissionPipeline
from tests.fakes import FakeClock, RecordingAdapter, RecordingNotifier

CONTACT_EMAIL = "owner@example.com"


async def _no_sleep(delay: float) -> None:
    return None


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        window_ms=60_000, max_requests=5, backend=InMemoryBackend(), clock=clock
    )


@pytest.fixture()
def appwrite_adapter() -> RecordingAdapter:
    return RecordingAdapter("appwrite")


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def adapters(appwrite_adapter) -> Dict[str, SubmissionAdapter]:
    return {"appwrite": appwrite_adapter, "mailto": MailtoAdapter(CONTACT_EMAIL)}


@pytest.fixture()
def pipeline(limiter, adapters, notifier) -> SubmissionPipeline:
    return SubmissionPipeline(
        limiter,
        adapters,
        contact_email=CONTACT_EMAIL,
        retry_policy=RetryPolicy(max_attempts=4, base_delay=1.0, sleep=_no_sleep),
        default_method="appwrite",
        notifier=notifier,
        timeout_seconds=5.0,
    )


@pytest.fixture()
def app(pipeline, limiter, adapters):
    """App with collaborators injected directly (lifespan is not run)."""
    application = create_app()
    application.state.pipeline = pipeline
    application.state.rate_limiter = limiter
    application.state.adapters = adapters
    application.state.trusted_networks = []
    application.state.submissions_service = None
    return application


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def valid_payload() -> dict:
    return {
        "name": "Jane Doe",
        "email": "jane@example.com",
        "subject": "Project inquiry",
        "message": "Hello, I would like to talk about a portfolio project.",
    }
