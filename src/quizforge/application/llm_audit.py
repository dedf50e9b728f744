"""Ports for the per-call audit trail written by the LLM router."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Protocol

from quizforge.application.llm import LLMServiceProvider, LLMTaskType


@dataclass(frozen=True)
class LLMCallAuditRecord:
    """One routed completion, successful or not.

    Output text is only kept when output storage is enabled; the hash and
    length are always recorded for successful calls.
    """

    llm_call_id: str
    task_type: LLMTaskType
    provider: LLMServiceProvider
    model: str
    prompt_hash: str
    status: str
    latency_ms: int | None
    input_tokens: int | None
    output_tokens: int | None
    correlation_id: str | None
    created_at: datetime
    output_hash: str | None = None
    output_length: int | None = None
    output_text: str | None = None


class LLMCallAuditRepository(Protocol):
    """Write and read ``llm_calls`` rows."""

    def save_call(self, record: LLMCallAuditRecord) -> None:
        ...

    def list_calls(self, correlation_id: str) -> list[LLMCallAuditRecord]:
        """Return calls recorded for one pipeline run, oldest first."""
        ...


class LLMCallAuditUnitOfWork(Protocol):
    """Transaction scope for audit writes; nothing is stored until ``commit``."""

    llm_calls: LLMCallAuditRepository

    def __enter__(self) -> LLMCallAuditUnitOfWork:
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


LLMCallAuditUnitOfWorkFactory = Callable[[], LLMCallAuditUnitOfWork]
