"""Parsing and normalization of model-generated multiple-choice questions."""

from __future__ import annotations

import json
import logging
import math
import random
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from quizforge.domain.mcq_payload import RawMCQV1
from quizforge.domain.quiz import Difficulty, MCQQuestion, QuestionType
from quizforge.infrastructure.llm.errors import ProviderResponseError
from quizforge.infrastructure.llm.summary_text import fix_latex_formatting

LOGGER = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=BaseModel)

THEORETICAL = "theoretical"
MATHEMATICAL = "mathematical"
OPTION_LETTERS = ("A", "B", "C", "D")

_THEORETICAL_RATIO: dict[QuestionType, float] = {
    QuestionType.THEORETICAL: 0.75,
    QuestionType.MATHEMATICAL: 0.25,
    QuestionType.MIXED: 0.5,
}
_FENCED_BLOCK_PATTERN = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?```", re.DOTALL)
_LEADING_FENCE_PATTERN = re.compile(r"^```(?:json|JSON)?\s*\n?", re.IGNORECASE)
_TRAILING_FENCE_PATTERN = re.compile(r"\n?```\s*$")


def question_distribution(
    num_questions: int,
    question_type: QuestionType,
    *,
    rng: random.Random | None = None,
) -> list[str]:
    """Return shuffled per-question kinds honoring the theoretical ratio."""
    ratio = _THEORETICAL_RATIO.get(question_type, _THEORETICAL_RATIO[QuestionType.MIXED])
    theoretical_count = math.floor(num_questions * ratio + 0.5)
    distribution = [THEORETICAL] * theoretical_count + [MATHEMATICAL] * (
        num_questions - theoretical_count
    )
    (rng or random).shuffle(distribution)
    return distribution


def parse_llm_json(raw: str) -> object:
    """Decode JSON from model output, tolerating fences and surrounding prose."""
    candidate = raw
    if "```" in candidate:
        match = _FENCED_BLOCK_PATTERN.search(candidate)
        if match is not None and match.group(1):
            candidate = match.group(1).strip()
        else:
            candidate = _TRAILING_FENCE_PATTERN.sub("", _LEADING_FENCE_PATTERN.sub("", candidate))
            candidate = candidate.strip()

    starts = [index for index in (candidate.find("["), candidate.find("{")) if index >= 0]
    if starts:
        start = min(starts)
        closing = "]" if candidate[start] == "[" else "}"
        end = candidate.rfind(closing)
        if end > start:
            candidate = candidate[start : end + 1]

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as exc:
        raise ProviderResponseError(
            "Model output is not valid JSON.",
            invalid_output=raw,
        ) from exc


def parse_raw_mcqs(raw: str) -> list[RawMCQV1]:
    """Parse a JSON array of questions; malformed items are skipped."""
    payload = parse_llm_json(raw)
    if not isinstance(payload, list):
        raise ProviderResponseError(
            f"Expected JSON array of questions, got {type(payload).__name__}.",
            invalid_output=raw,
        )

    items: list[RawMCQV1] = []
    for index, item in enumerate(payload):
        try:
            items.append(RawMCQV1.model_validate(item))
        except ValidationError as exc:
            LOGGER.warning(
                "event=mcq_item_invalid index=%s error_count=%s",
                index,
                exc.error_count(),
            )
    return items


def parse_model(schema: type[TModel], raw: str) -> TModel:
    """Parse a JSON object into schema, mapping failures to ProviderResponseError."""
    payload = parse_llm_json(raw)
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise ProviderResponseError(
            f"Model output failed {schema.__name__} validation.",
            invalid_output=raw,
        ) from exc


def dump_raw_mcqs(items: list[RawMCQV1]) -> str:
    """Serialize questions back into the JSON shape the models produce."""
    return json.dumps(
        [item.model_dump() for item in items],
        ensure_ascii=False,
        indent=2,
    )


def format_mcqs(items: list[RawMCQV1]) -> list[MCQQuestion]:
    """Normalize raw model questions into domain questions.

    Letter-keyed options become an ordered list, letter answers become
    0-based indices (unknown letters map to 0) and LaTeX delimiters are
    normalized. Questions with empty text, or without exactly four
    non-empty options, are dropped.
    """
    questions: list[MCQQuestion] = []
    for item in items:
        if isinstance(item.options, list):
            options = [str(option) for option in item.options]
        else:
            options = [item.options.get(letter, "") for letter in OPTION_LETTERS]

        question_text = fix_latex_formatting(item.question)
        if not question_text:
            continue
        if len(options) != len(OPTION_LETTERS) or not all(option.strip() for option in options):
            LOGGER.warning(
                "event=mcq_item_invalid reason=option_count option_count=%s",
                sum(1 for option in options if option.strip()),
            )
            continue

        questions.append(
            MCQQuestion(
                question=question_text,
                options=tuple(fix_latex_formatting(option) for option in options),
                correct_answer=_resolve_correct_index(item.correct_answer),
                explanation=fix_latex_formatting(item.explanation),
                difficulty=_resolve_difficulty(item.difficulty),
                topic=item.topic,
            )
        )
    return questions


def _resolve_correct_index(value: int | str) -> int:
    if isinstance(value, int):
        return value
    letter = value.strip().upper()
    return OPTION_LETTERS.index(letter) if letter in OPTION_LETTERS else 0


def _resolve_difficulty(value: str) -> Difficulty:
    normalized = value.strip().lower()
    if normalized in {item.value for item in Difficulty}:
        return Difficulty(normalized)
    return Difficulty.MEDIUM
