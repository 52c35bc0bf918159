"""Tests for the explicit retry policy."""
import anyio
import pytest

from portfolio_api.core.errors import (
    BackendSchemaError,
    DocumentConflictError,
    NetworkError,
    UnknownBackendError,
)
from portfolio_api.core.retry import RetryPolicy


class Script:
    """Attempt callable that raises the scripted errors, then succeeds."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.attempts = []

    async def __call__(self, attempt):
        self.attempts.append(attempt)
        if self.errors:
            raise self.errors.pop(0)
        return f"ok-{attempt}"


def _policy(**kwargs):
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    return RetryPolicy(sleep=fake_sleep, **kwargs), sleeps


def test_success_first_try():
    policy, sleeps = _policy()
    result = anyio.run(policy.execute, Script())
    assert result.ok is True
    assert result.value == "ok-1"
    assert result.attempts == 1
    assert sleeps == []


def test_transient_errors_back_off_exponentially():
    policy, sleeps = _policy(max_attempts=4, base_delay=1.0)
    script = Script(NetworkError("down"), NetworkError("down"), NetworkError("down"))
    result = anyio.run(policy.execute, script)
    assert result.ok is True
    assert result.attempts == 4
    assert sleeps == [1.0, 2.0, 4.0]
    assert result.delays == [1.0, 2.0, 4.0]


def test_gives_up_after_max_attempts():
    policy, _ = _policy(max_attempts=4)
    script = Script(*[NetworkError("down") for _ in range(10)])
    result = anyio.run(policy.execute, script)
    assert result.ok is False
    assert isinstance(result.error, NetworkError)
    assert script.attempts == [1, 2, 3, 4]


def test_conflict_retries_immediately():
    policy, sleeps = _policy()
    result = anyio.run(policy.execute, Script(DocumentConflictError("exists")))
    assert result.ok is True
    assert result.attempts == 2
    assert sleeps == []
    assert result.delays == [0.0]


def test_terminal_error_is_not_retried():
    policy, sleeps = _policy()
    script = Script(BackendSchemaError("Unknown attribute: phone"))
    result = anyio.run(policy.execute, script)
    assert result.ok is False
    assert result.attempts == 1
    assert isinstance(result.error, BackendSchemaError)
    assert sleeps == []


def test_unclassified_exception_becomes_unknown_error():
    policy, _ = _policy()
    result = anyio.run(policy.execute, Script(KeyError("boom")))
    assert result.ok is False
    assert isinstance(result.error, UnknownBackendError)
    assert result.attempts == 1


def test_max_delay_caps_backoff():
    policy, _ = _policy(base_delay=10.0, max_delay=15.0)
    assert policy.delay_for(3, NetworkError("x")) == 15.0


def test_on_retry_callback_sees_each_retry():
    policy, _ = _policy()
    seen = []

    async def run():
        return await policy.execute(
            Script(NetworkError("a"), NetworkError("b")),
            on_retry=lambda attempt, error, delay: seen.append((attempt, delay)),
        )

    anyio.run(run)
    assert seen == [(1, 1.0), (2, 2.0)]


def test_invalid_max_attempts():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
