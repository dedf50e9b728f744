"""Question generator stage: block generation, de-duplication, and quality review."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar
from uuid import uuid4

from quizforge.application.llm import (
    LLMGateway,
    LLMRequest,
    LLMTaskType,
    MissingApiKeyLLMError,
)
from quizforge.application.ports import GenerationParameters, QuestionGenerator
from quizforge.domain.mcq_payload import DuplicateSelectionV1, RawMCQV1
from quizforge.domain.quiz import MCQQuestion
from quizforge.infrastructure.llm.errors import LLMConfigurationError
from quizforge.infrastructure.llm.mcq_format import (
    MATHEMATICAL,
    THEORETICAL,
    dump_raw_mcqs,
    format_mcqs,
    parse_model,
    parse_raw_mcqs,
    question_distribution,
)
from quizforge.infrastructure.llm.prompts import (
    MCQ_DEDUPLICATION_PROMPT,
    MCQ_GENERATION_PROMPT,
    MCQ_REVIEW_PROMPT,
    build_mcq_deduplication_user_prompt,
    build_mcq_generation_user_prompt,
    build_mcq_review_user_prompt,
)
from quizforge.infrastructure.llm.stage_errors import LLM_ERRORS, to_stage_error

LOGGER = logging.getLogger(__name__)

MAX_QUESTIONS_PER_BLOCK = 5
MAX_CONCURRENT_BLOCKS = 6
REVIEW_CHUNK_SIZE = 5
GENERATION_MAX_OUTPUT_TOKENS = 4000
DEDUPLICATION_MAX_OUTPUT_TOKENS = 2000
REVIEW_MAX_OUTPUT_TOKENS = 4000
GENERATION_TEMPERATURE = 0.7
DEDUPLICATION_TEMPERATURE = 0.1
REVIEW_TEMPERATURE = 0.2

TResult = TypeVar("TResult")


@dataclass(frozen=True)
class _Block:
    index: int
    kinds: tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.kinds)


class LlmQuestionGenerator(QuestionGenerator):
    """Generate questions in concurrent blocks, then trim and review them.

    The returned count is best effort: failed blocks are retried once and
    otherwise skipped, and review failures keep the unreviewed questions.
    """

    def __init__(
        self,
        llm: LLMGateway,
        *,
        rng: random.Random | None = None,
        max_concurrent_blocks: int = MAX_CONCURRENT_BLOCKS,
    ) -> None:
        if max_concurrent_blocks < 1:
            raise ValueError("max_concurrent_blocks must be >= 1")
        self._llm = llm
        self._rng = rng
        self._max_concurrent_blocks = max_concurrent_blocks

    async def generate(self, parameters: GenerationParameters) -> list[MCQQuestion]:
        correlation_id = parameters.correlation_id or str(uuid4())
        semaphore = asyncio.Semaphore(self._max_concurrent_blocks)

        generated = await self._generate_blocks(parameters, correlation_id, semaphore)
        deduplicated = await self._deduplicate(generated, parameters, correlation_id)
        reviewed = await self._review(deduplicated, parameters, correlation_id, semaphore)
        questions = format_mcqs(reviewed)

        LOGGER.info(
            (
                "event=mcq_generation_completed correlation_id=%s requested=%s "
                "generated=%s deduplicated=%s reviewed=%s final=%s"
            ),
            correlation_id,
            parameters.num_questions,
            len(generated),
            len(deduplicated),
            len(reviewed),
            len(questions),
        )
        return questions

    async def _generate_blocks(
        self,
        parameters: GenerationParameters,
        correlation_id: str,
        semaphore: asyncio.Semaphore,
    ) -> list[RawMCQV1]:
        blocks = _split_blocks(
            question_distribution(
                parameters.num_questions,
                parameters.question_type,
                rng=self._rng,
            )
        )
        outcomes = await asyncio.gather(
            *(
                _limited(
                    semaphore,
                    lambda block=block: self._generate_block(block, parameters, correlation_id),
                )
                for block in blocks
            ),
            return_exceptions=True,
        )

        results: dict[int, list[RawMCQV1]] = {}
        failed: list[_Block] = []
        last_error: Exception | None = None
        for block, outcome in zip(blocks, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                last_error = _ensure_recoverable(outcome)
                failed.append(block)
            else:
                results[block.index] = outcome

        for block in failed:
            LOGGER.warning(
                "event=mcq_block_retry correlation_id=%s block=%s size=%s",
                correlation_id,
                block.index,
                block.size,
            )
            try:
                results[block.index] = await self._generate_block(
                    block,
                    parameters,
                    correlation_id,
                )
            except Exception as exc:
                last_error = _ensure_recoverable(exc)
                LOGGER.warning(
                    "event=mcq_block_failed correlation_id=%s block=%s error_type=%s",
                    correlation_id,
                    block.index,
                    exc.__class__.__name__,
                )

        if not results and last_error is not None:
            raise to_stage_error(last_error, action="Question generation") from last_error

        return [item for index in sorted(results) for item in results[index]]

    async def _generate_block(
        self,
        block: _Block,
        parameters: GenerationParameters,
        correlation_id: str,
    ) -> list[RawMCQV1]:
        completion = await self._llm.complete(
            LLMRequest(
                task_type=LLMTaskType.MCQ_GENERATE,
                system_prompt=MCQ_GENERATION_PROMPT.system_prompt(parameters.language),
                user_prompt=build_mcq_generation_user_prompt(
                    summary=parameters.summary,
                    question_count=block.size,
                    theoretical_count=block.kinds.count(THEORETICAL),
                    mathematical_count=block.kinds.count(MATHEMATICAL),
                    difficulty=parameters.difficulty,
                    language=parameters.language,
                    topic=parameters.topic,
                ),
                correlation_id=correlation_id,
                max_output_tokens=GENERATION_MAX_OUTPUT_TOKENS,
                temperature=GENERATION_TEMPERATURE,
            )
        )
        return parse_raw_mcqs(completion.output_text)

    async def _deduplicate(
        self,
        items: list[RawMCQV1],
        parameters: GenerationParameters,
        correlation_id: str,
    ) -> list[RawMCQV1]:
        target = parameters.num_questions
        if len(items) <= target:
            return items

        try:
            completion = await self._llm.complete(
                LLMRequest(
                    task_type=LLMTaskType.MCQ_DEDUPLICATE,
                    system_prompt=MCQ_DEDUPLICATION_PROMPT.system_prompt(parameters.language),
                    user_prompt=build_mcq_deduplication_user_prompt(
                        questions=[item.question for item in items],
                        target_count=target,
                        language=parameters.language,
                    ),
                    correlation_id=correlation_id,
                    max_output_tokens=DEDUPLICATION_MAX_OUTPUT_TOKENS,
                    temperature=DEDUPLICATION_TEMPERATURE,
                )
            )
            selection = parse_model(DuplicateSelectionV1, completion.output_text)
        except LLM_ERRORS as exc:
            LOGGER.warning(
                "event=mcq_deduplication_failed correlation_id=%s error_type=%s",
                correlation_id,
                exc.__class__.__name__,
            )
            return items[:target]

        kept = [items[index] for index in selection.keep_indices if 0 <= index < len(items)]
        return kept[:target] if kept else items[:target]

    async def _review(
        self,
        items: list[RawMCQV1],
        parameters: GenerationParameters,
        correlation_id: str,
        semaphore: asyncio.Semaphore,
    ) -> list[RawMCQV1]:
        chunks = [
            items[start : start + REVIEW_CHUNK_SIZE]
            for start in range(0, len(items), REVIEW_CHUNK_SIZE)
        ]
        reviewed = await asyncio.gather(
            *(
                _limited(
                    semaphore,
                    lambda chunk=chunk: self._review_chunk(chunk, parameters, correlation_id),
                )
                for chunk in chunks
            )
        )
        return [item for chunk in reviewed for item in chunk]

    async def _review_chunk(
        self,
        chunk: list[RawMCQV1],
        parameters: GenerationParameters,
        correlation_id: str,
    ) -> list[RawMCQV1]:
        try:
            completion = await self._llm.complete(
                LLMRequest(
                    task_type=LLMTaskType.MCQ_REVIEW,
                    system_prompt=MCQ_REVIEW_PROMPT.system_prompt(parameters.language),
                    user_prompt=build_mcq_review_user_prompt(
                        chunk_json=dump_raw_mcqs(chunk),
                        summary=parameters.summary,
                        difficulty=parameters.difficulty,
                        language=parameters.language,
                    ),
                    correlation_id=correlation_id,
                    max_output_tokens=REVIEW_MAX_OUTPUT_TOKENS,
                    temperature=REVIEW_TEMPERATURE,
                )
            )
            improved = parse_raw_mcqs(completion.output_text)
        except LLM_ERRORS as exc:
            LOGGER.warning(
                "event=mcq_review_failed correlation_id=%s chunk_size=%s error_type=%s",
                correlation_id,
                len(chunk),
                exc.__class__.__name__,
            )
            return chunk

        return improved or chunk


def _split_blocks(distribution: list[str]) -> list[_Block]:
    return [
        _Block(
            index=index,
            kinds=tuple(distribution[start : start + MAX_QUESTIONS_PER_BLOCK]),
        )
        for index, start in enumerate(range(0, len(distribution), MAX_QUESTIONS_PER_BLOCK))
    ]


async def _limited(
    semaphore: asyncio.Semaphore,
    operation: Callable[[], Awaitable[TResult]],
) -> TResult:
    async with semaphore:
        return await operation()


def _ensure_recoverable(error: BaseException) -> Exception:
    """Return LLM errors for retry; re-raise everything else."""
    if isinstance(error, (MissingApiKeyLLMError, LLMConfigurationError)):
        raise to_stage_error(error, action="Question generation") from error
    if not isinstance(error, LLM_ERRORS):
        raise error
    return error
