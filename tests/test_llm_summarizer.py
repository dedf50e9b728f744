"""Unit tests for the LLM-backed summarizer stage."""

from __future__ import annotations

import asyncio

import pytest

from quizforge.application.errors import StageTransportError, StageUnavailableError
from quizforge.application.llm import (
    LLMCompletion,
    LLMRequest,
    LLMServiceProvider,
    LLMTaskType,
    LLMTemporaryError,
    MissingApiKeyLLMError,
)
from quizforge.application.ports import SummaryRequest
from quizforge.domain.quiz import SummaryStyle
from quizforge.infrastructure.llm.summarizer import LlmSummarizer

COMPLETE_SUMMARY = (
    "Photosynthesis converts light into chemical energy. "
    "Plants store this energy as glucose molecules."
)


class ScriptedGateway:
    def __init__(self, outputs: list[str | Exception]) -> None:
        self._outputs = outputs
        self.requests: list[LLMRequest] = []

    async def complete(self, request: LLMRequest) -> LLMCompletion:
        self.requests.append(request)
        output = self._outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return _make_completion(output)


def test_summarizer_returns_complete_summary_in_one_call() -> None:
    gateway = ScriptedGateway([f"  {COMPLETE_SUMMARY}  "])

    result = asyncio.run(LlmSummarizer(gateway).summarize(_make_request("run-1")))

    assert result.summary == COMPLETE_SUMMARY
    assert result.word_count == 13
    assert result.style is SummaryStyle.COMPREHENSIVE
    assert len(gateway.requests) == 1
    request = gateway.requests[0]
    assert request.task_type is LLMTaskType.SUMMARIZE
    assert request.correlation_id == "run-1"
    assert request.max_output_tokens == 4000
    assert _lesson_text() in request.user_prompt


def test_summarizer_completes_truncated_summary_once() -> None:
    gateway = ScriptedGateway(
        [
            "Photosynthesis converts light into chemical energy and plants store it as",
            "glucose for later use.",
        ]
    )

    result = asyncio.run(LlmSummarizer(gateway).summarize(_make_request()))

    assert [request.task_type for request in gateway.requests] == [
        LLMTaskType.SUMMARIZE,
        LLMTaskType.SUMMARY_COMPLETION,
    ]
    assert result.summary.endswith("plants store it as\nglucose for later use.")
    assert "plants store it as" in gateway.requests[1].user_prompt


def test_summarizer_normalizes_latex_delimiters() -> None:
    gateway = ScriptedGateway([COMPLETE_SUMMARY + " The area is \\(\\pi r^2\\)."])

    result = asyncio.run(LlmSummarizer(gateway).summarize(_make_request()))

    assert "$\\pi r^2$" in result.summary
    assert "\\(" not in result.summary


def test_summarizer_budgets_long_input() -> None:
    text = " ".join(
        f"Sentence number {index} describes cellular respiration in detail."
        for index in range(40)
    )
    gateway = ScriptedGateway([COMPLETE_SUMMARY])

    asyncio.run(
        LlmSummarizer(gateway, max_input_tokens=20).summarize(
            SummaryRequest(text=text, style=SummaryStyle.KEY_POINTS, language="en")
        )
    )

    user_prompt = gateway.requests[0].user_prompt
    assert "Sentence number 0 describes" in user_prompt
    assert "Sentence number 20 describes" not in user_prompt


def test_summarizer_sends_unpunctuated_text_within_budget() -> None:
    gateway = ScriptedGateway([COMPLETE_SUMMARY])

    asyncio.run(
        LlmSummarizer(gateway).summarize(
            SummaryRequest(text="kelime " * 30000, style=SummaryStyle.COMPREHENSIVE, language="tr")
        )
    )

    document_text = gateway.requests[0].user_prompt.split("--- Document Text ---\n", 1)[1]
    assert document_text.startswith("kelime kelime")
    assert len(document_text) <= 6000 * 4


def test_summarizer_maps_llm_failure_to_transport_error() -> None:
    gateway = ScriptedGateway([LLMTemporaryError("provider timed out")])

    with pytest.raises(StageTransportError, match="Summarization failed: provider timed out"):
        asyncio.run(LlmSummarizer(gateway).summarize(_make_request()))


def test_summarizer_maps_missing_key_to_unavailable() -> None:
    gateway = ScriptedGateway([MissingApiKeyLLMError("API key for provider 'fal' is missing.")])

    with pytest.raises(StageUnavailableError, match="Summarization is not configured"):
        asyncio.run(LlmSummarizer(gateway).summarize(_make_request()))


def test_summarizer_generates_correlation_id_when_absent() -> None:
    gateway = ScriptedGateway([COMPLETE_SUMMARY])

    asyncio.run(LlmSummarizer(gateway).summarize(_make_request(None)))

    assert gateway.requests[0].correlation_id


def _make_request(correlation_id: str | None = "run-1") -> SummaryRequest:
    return SummaryRequest(
        text=_lesson_text(),
        style=SummaryStyle.COMPREHENSIVE,
        language="en",
        correlation_id=correlation_id,
    )


def _lesson_text() -> str:
    return "Plants use chlorophyll to capture sunlight and convert carbon dioxide into sugar."


def _make_completion(output_text: str) -> LLMCompletion:
    return LLMCompletion(
        llm_call_id="call-1",
        provider=LLMServiceProvider.FAL,
        model="test-model",
        prompt_hash="hash",
        latency_ms=5,
        output_text=output_text,
        input_tokens=None,
        output_tokens=None,
    )
