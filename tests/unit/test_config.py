import pytest
from pydantic import ValidationError

from portfolio_api.core.config import Settings


def test_submission_backend_is_normalised():
    assert Settings(SUBMISSION_BACKEND=" Appwrite ").SUBMISSION_BACKEND == "appwrite"


def test_unknown_submission_backend_rejected():
    with pytest.raises(ValidationError):
        Settings(SUBMISSION_BACKEND="carrier-pigeon")


@pytest.mark.parametrize("field", ["RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_MS"])
def test_rate_limit_values_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_appwrite_configured_needs_project_and_key():
    assert not Settings(APPWRITE_PROJECT_ID="proj", APPWRITE_API_KEY=None).appwrite_configured
    assert Settings(APPWRITE_PROJECT_ID="proj", APPWRITE_API_KEY="k").appwrite_configured
