"""
Tests for the exponential-backoff retry engine.
"""

import asyncio

import pytest

from studio.services.errors import ErrorKind, StudioError
from studio.services.retry import with_retry


class ApiError(Exception):
    """Shaped like a google-genai APIError."""

    def __init__(self, code, message):
        super().__init__(f"{code} {message}")
        self.code = code
        self.message = message


class Flaky:
    """Fails with the given exceptions, then returns ``result``."""

    def __init__(self, failures, result="ok"):
        self.failures = list(failures)
        self.result = result
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.failures:
            raise self.failures.pop(0)
        return self.result


class TestWithRetry:
    def test_success_on_first_call(self, sleep):
        op = Flaky([])
        assert asyncio.run(with_retry(op, sleep=sleep)) == "ok"
        assert op.calls == 1
        assert sleep.delays == []

    def test_async_operation(self, sleep):
        async def op():
            return 42

        assert asyncio.run(with_retry(op, sleep=sleep)) == 42

    def test_rate_limit_then_success(self, sleep):
        op = Flaky([ApiError(429, "Too Many Requests")] * 2)
        assert asyncio.run(with_retry(op, 5, 2.0, sleep=sleep)) == "ok"
        assert op.calls == 3
        assert sleep.delays == [2.0, 4.0]

    def test_exhausted_budget_raises_quota_exceeded(self, sleep):
        op = Flaky([ApiError(429, "RESOURCE_EXHAUSTED")] * 10)

        with pytest.raises(StudioError) as exc_info:
            asyncio.run(with_retry(op, 3, 1.0, sleep=sleep))

        assert exc_info.value.kind is ErrorKind.RATE_LIMITED
        assert exc_info.value.message == "QUOTA_EXCEEDED"
        assert op.calls == 4
        assert sleep.delays == [1.0, 2.0, 4.0]

    def test_default_budget(self, sleep):
        op = Flaky([Exception("429 quota exceeded")] * 10)

        with pytest.raises(StudioError):
            asyncio.run(with_retry(op, sleep=sleep))

        assert op.calls == 6
        assert sleep.delays == [2.0, 4.0, 8.0, 16.0, 32.0]

    def test_invalid_key_is_not_retried(self, sleep):
        op = Flaky([Exception("API key not valid. Please pass a valid API key.")])

        with pytest.raises(StudioError) as exc_info:
            asyncio.run(with_retry(op, sleep=sleep))

        assert exc_info.value.kind is ErrorKind.INVALID_CREDENTIAL
        assert op.calls == 1
        assert sleep.delays == []

    def test_unknown_error_keeps_cause(self, sleep):
        boom = ValueError("boom")
        op = Flaky([boom])

        with pytest.raises(StudioError) as exc_info:
            asyncio.run(with_retry(op, sleep=sleep))

        assert exc_info.value.kind is ErrorKind.UNKNOWN
        assert exc_info.value.__cause__ is boom

    def test_studio_error_passes_through_untouched(self, sleep):
        original = StudioError(ErrorKind.CONTENT_POLICY_REJECTED, "blocked")
        op = Flaky([original])

        with pytest.raises(StudioError) as exc_info:
            asyncio.run(with_retry(op, sleep=sleep))

        assert exc_info.value is original

    def test_zero_retries(self, sleep):
        op = Flaky([ApiError(429, "busy")])

        with pytest.raises(StudioError) as exc_info:
            asyncio.run(with_retry(op, 0, 1.0, sleep=sleep))

        assert exc_info.value.message == "QUOTA_EXCEEDED"
        assert op.calls == 1
        assert sleep.delays == []

    def test_independent_budgets(self, sleep):
        first = Flaky([ApiError(429, "busy")] * 2)
        second = Flaky([ApiError(429, "busy")] * 2)

        async def both():
            return await asyncio.gather(
                with_retry(first, 2, 1.0, sleep=sleep),
                with_retry(second, 2, 1.0, sleep=sleep),
            )

        assert asyncio.run(both()) == ["ok", "ok"]
        assert first.calls == 3
        assert second.calls == 3
