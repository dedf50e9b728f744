"""Summarizer stage backed by a routed language model."""

from __future__ import annotations

import logging
from uuid import uuid4

from quizforge.application.llm import LLMGateway, LLMRequest, LLMTaskType
from quizforge.application.ports import Summarizer, SummaryRequest, SummaryResult
from quizforge.infrastructure.llm.prompts import (
    SUMMARY_PROMPT,
    build_summary_completion_prompt,
    build_summary_user_prompt,
)
from quizforge.infrastructure.llm.stage_errors import LLM_ERRORS, to_stage_error
from quizforge.infrastructure.llm.summary_text import (
    DEFAULT_MAX_INPUT_TOKENS,
    count_words,
    extractive_preprocess,
    fix_latex_formatting,
    is_summary_complete,
)

LOGGER = logging.getLogger(__name__)

SUMMARY_MAX_OUTPUT_TOKENS = 4000
COMPLETION_MAX_OUTPUT_TOKENS = 2000
SUMMARY_TEMPERATURE = 0.3


class LlmSummarizer(Summarizer):
    """Budget the input, summarize, and finish truncated summaries once."""

    def __init__(
        self,
        llm: LLMGateway,
        *,
        max_input_tokens: int = DEFAULT_MAX_INPUT_TOKENS,
    ) -> None:
        self._llm = llm
        self._max_input_tokens = max_input_tokens

    async def summarize(self, request: SummaryRequest) -> SummaryResult:
        correlation_id = request.correlation_id or str(uuid4())
        optimized_text = extractive_preprocess(request.text, self._max_input_tokens)
        system_prompt = SUMMARY_PROMPT.system_prompt(request.language)

        try:
            completion = await self._llm.complete(
                LLMRequest(
                    task_type=LLMTaskType.SUMMARIZE,
                    system_prompt=system_prompt,
                    user_prompt=build_summary_user_prompt(
                        text=optimized_text,
                        style=request.style,
                        language=request.language,
                    ),
                    correlation_id=correlation_id,
                    max_output_tokens=SUMMARY_MAX_OUTPUT_TOKENS,
                    temperature=SUMMARY_TEMPERATURE,
                )
            )
            summary = completion.output_text.strip()

            if not is_summary_complete(summary):
                LOGGER.info(
                    "event=summary_incomplete correlation_id=%s length=%s",
                    correlation_id,
                    len(summary),
                )
                continuation = await self._llm.complete(
                    LLMRequest(
                        task_type=LLMTaskType.SUMMARY_COMPLETION,
                        system_prompt=system_prompt,
                        user_prompt=build_summary_completion_prompt(
                            summary=summary,
                            language=request.language,
                        ),
                        correlation_id=correlation_id,
                        max_output_tokens=COMPLETION_MAX_OUTPUT_TOKENS,
                        temperature=SUMMARY_TEMPERATURE,
                    )
                )
                summary = f"{summary}\n{continuation.output_text.strip()}".strip()
        except LLM_ERRORS as exc:
            raise to_stage_error(exc, action="Summarization") from exc

        summary = fix_latex_formatting(summary)
        LOGGER.info(
            (
                "event=summary_generated correlation_id=%s style=%s input_length=%s "
                "budgeted_length=%s word_count=%s"
            ),
            correlation_id,
            request.style.value,
            len(request.text),
            len(optimized_text),
            count_words(summary),
        )
        return SummaryResult(
            summary=summary,
            word_count=count_words(summary),
            style=request.style,
        )
