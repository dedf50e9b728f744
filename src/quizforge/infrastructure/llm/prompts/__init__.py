"""Governed prompt specifications."""

from quizforge.infrastructure.llm.prompts.mcq import (
    MCQ_DEDUPLICATION_PROMPT,
    MCQ_GENERATION_PROMPT,
    MCQ_REVIEW_PROMPT,
    build_mcq_deduplication_user_prompt,
    build_mcq_generation_user_prompt,
    build_mcq_review_user_prompt,
)
from quizforge.infrastructure.llm.prompts.summary import (
    SUMMARY_PROMPT,
    PromptSpec,
    build_summary_completion_prompt,
    build_summary_user_prompt,
)

__all__ = [
    "MCQ_DEDUPLICATION_PROMPT",
    "MCQ_GENERATION_PROMPT",
    "MCQ_REVIEW_PROMPT",
    "SUMMARY_PROMPT",
    "PromptSpec",
    "build_mcq_deduplication_user_prompt",
    "build_mcq_generation_user_prompt",
    "build_mcq_review_user_prompt",
    "build_summary_completion_prompt",
    "build_summary_user_prompt",
]
