"""Exponential backoff for transient provider failures."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from quizforge.infrastructure.llm.errors import (
    LLMRetryExhaustedError,
    ProviderRateLimitError,
    ProviderServerError,
)

T = TypeVar("T")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (
    ProviderRateLimitError,
    ProviderServerError,
    httpx.TimeoutException,
    httpx.TransportError,
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay_seconds: float = 0.25
    max_delay_seconds: float = 2.0
    backoff_multiplier: float = 2.0

    def check(self) -> None:
        """Raise ``ValueError`` naming the first out-of-range field."""
        minimums = (
            ("max_attempts", self.max_attempts, 1),
            ("base_delay_seconds", self.base_delay_seconds, 0),
            ("max_delay_seconds", self.max_delay_seconds, 0),
            ("backoff_multiplier", self.backoff_multiplier, 1),
        )
        for name, value, minimum in minimums:
            if value < minimum:
                raise ValueError(f"{name} must be >= {minimum}")

    def delay_after(self, failed_attempt: int) -> float:
        """Seconds to wait after the given 1-based attempt failed."""
        growth = self.backoff_multiplier ** (failed_attempt - 1)
        return min(self.max_delay_seconds, self.base_delay_seconds * growth)


class RetryExecutor:
    """Await an operation until it succeeds, fails hard, or runs out of attempts."""

    def __init__(
        self,
        policy: RetryPolicy,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        policy.check()
        self._policy = policy
        self._sleep = sleep

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        last_attempt = self._policy.max_attempts
        for attempt in range(1, last_attempt + 1):
            try:
                return await operation()
            except RETRYABLE_ERRORS as exc:
                if attempt == last_attempt:
                    raise LLMRetryExhaustedError(
                        f"Retry budget exhausted after {attempt} attempts.",
                        attempts=attempt,
                    ) from exc
                await self._sleep(self._policy.delay_after(attempt))
        raise AssertionError("unreachable")
