"""Unit tests for bounded retry/backoff behavior."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from quizforge.infrastructure.llm.errors import LLMRetryExhaustedError, ProviderRateLimitError
from quizforge.infrastructure.llm.retry import RetryExecutor, RetryPolicy


def _recording_sleep(calls: list[float]):
    async def sleep(delay: float) -> None:
        calls.append(delay)

    return sleep


def test_retry_executor_retries_timeout_then_succeeds() -> None:
    attempts = {"count": 0}
    sleep_calls: list[float] = []

    async def operation() -> str:
        attempts["count"] += 1
        if attempts["count"] < 3:
            raise httpx.ReadTimeout("timed out")
        return "ok"

    executor = RetryExecutor(
        RetryPolicy(
            max_attempts=4,
            base_delay_seconds=0.1,
            max_delay_seconds=1.0,
            backoff_multiplier=2.0,
        ),
        sleep=_recording_sleep(sleep_calls),
    )

    result = asyncio.run(executor.run(operation))

    assert result == "ok"
    assert attempts["count"] == 3
    assert sleep_calls == [0.1, 0.2]


def test_retry_executor_caps_delay_at_maximum() -> None:
    sleep_calls: list[float] = []

    async def operation() -> str:
        raise ProviderRateLimitError("429")

    executor = RetryExecutor(
        RetryPolicy(
            max_attempts=4,
            base_delay_seconds=1.0,
            max_delay_seconds=1.5,
            backoff_multiplier=3.0,
        ),
        sleep=_recording_sleep(sleep_calls),
    )

    with pytest.raises(LLMRetryExhaustedError):
        asyncio.run(executor.run(operation))

    assert sleep_calls == [1.0, 1.5, 1.5]


def test_retry_executor_raises_when_retry_budget_exhausted() -> None:
    sleep_calls: list[float] = []

    async def operation() -> str:
        raise ProviderRateLimitError("429")

    executor = RetryExecutor(
        RetryPolicy(
            max_attempts=3,
            base_delay_seconds=0.0,
            max_delay_seconds=0.0,
            backoff_multiplier=2.0,
        ),
        sleep=_recording_sleep(sleep_calls),
    )

    with pytest.raises(LLMRetryExhaustedError) as exc_info:
        asyncio.run(executor.run(operation))

    assert exc_info.value.attempts == 3
    assert sleep_calls == [0.0, 0.0]


def test_retry_executor_does_not_retry_non_retryable_error() -> None:
    sleep_calls: list[float] = []

    async def operation() -> str:
        raise ValueError("bad input")

    executor = RetryExecutor(RetryPolicy(max_attempts=3), sleep=_recording_sleep(sleep_calls))

    with pytest.raises(ValueError, match="bad input"):
        asyncio.run(executor.run(operation))

    assert sleep_calls == []


def test_retry_policy_validation() -> None:
    with pytest.raises(ValueError, match="max_attempts"):
        RetryExecutor(RetryPolicy(max_attempts=0))
    with pytest.raises(ValueError, match="backoff_multiplier"):
        RetryExecutor(RetryPolicy(backoff_multiplier=0.5))
