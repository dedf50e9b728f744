"""Configuration and policy checks for LLM routing."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from quizforge.application.llm import LLMServiceProvider, LLMTaskType
from quizforge.infrastructure.llm.errors import LLMConfigurationError
from quizforge.infrastructure.llm.retry import RetryPolicy

LLM_PROVIDER_ENV_VAR = "QUIZFORGE_LLM_PROVIDER"
LLM_TIMEOUT_ENV_VAR = "QUIZFORGE_LLM_TIMEOUT_SECONDS"
SUMMARY_MODEL_ENV_VAR = "QUIZFORGE_SUMMARY_MODEL"
MCQ_MODEL_ENV_VAR = "QUIZFORGE_MCQ_MODEL"
MCQ_DEDUP_MODEL_ENV_VAR = "QUIZFORGE_MCQ_DEDUP_MODEL"
MCQ_REVIEW_MODEL_ENV_VAR = "QUIZFORGE_MCQ_REVIEW_MODEL"

DEFAULT_PROVIDER = LLMServiceProvider.FAL
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_SUMMARY_MODEL = "openai/gpt-4o-mini"
DEFAULT_MCQ_MODEL = "openai/gpt-4o-mini"
DEFAULT_MCQ_DEDUP_MODEL = "openai/gpt-4.1-nano"
DEFAULT_MCQ_REVIEW_MODEL = "google/gemini-2.5-flash"


@dataclass(frozen=True)
class TaskRoute:
    """Provider/model target for one task type."""

    provider: LLMServiceProvider
    model: str


@dataclass(frozen=True)
class LLMRouterConfig:
    """Router configuration including route map and retry settings."""

    routes: Mapping[LLMTaskType, TaskRoute]
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)


def default_routes(provider: LLMServiceProvider | None = None) -> dict[LLMTaskType, TaskRoute]:
    """Return default task routing; every task goes through one provider."""
    resolved_provider = provider or resolve_provider()
    summary_model = _resolve_model(env_var=SUMMARY_MODEL_ENV_VAR, fallback=DEFAULT_SUMMARY_MODEL)
    mcq_model = _resolve_model(env_var=MCQ_MODEL_ENV_VAR, fallback=DEFAULT_MCQ_MODEL)
    dedup_model = _resolve_model(
        env_var=MCQ_DEDUP_MODEL_ENV_VAR,
        fallback=DEFAULT_MCQ_DEDUP_MODEL,
    )
    review_model = _resolve_model(
        env_var=MCQ_REVIEW_MODEL_ENV_VAR,
        fallback=DEFAULT_MCQ_REVIEW_MODEL,
    )
    return {
        LLMTaskType.SUMMARIZE: TaskRoute(provider=resolved_provider, model=summary_model),
        LLMTaskType.SUMMARY_COMPLETION: TaskRoute(
            provider=resolved_provider,
            model=summary_model,
        ),
        LLMTaskType.MCQ_GENERATE: TaskRoute(provider=resolved_provider, model=mcq_model),
        LLMTaskType.MCQ_DEDUPLICATE: TaskRoute(provider=resolved_provider, model=dedup_model),
        LLMTaskType.MCQ_REVIEW: TaskRoute(provider=resolved_provider, model=review_model),
    }


def default_router_config() -> LLMRouterConfig:
    """Build default config from environment."""
    return LLMRouterConfig(
        routes=default_routes(),
        timeout_seconds=_resolve_timeout(),
    )


def validate_routing_policy(routes: Mapping[LLMTaskType, TaskRoute]) -> None:
    """Ensure every task type has a usable route."""
    for task_type in LLMTaskType:
        route = routes.get(task_type)
        if route is None:
            raise LLMConfigurationError(f"Missing route for task type: {task_type.value}")
        if not route.model.strip():
            raise LLMConfigurationError(f"Empty model name for task type: {task_type.value}")


def resolve_provider() -> LLMServiceProvider:
    """Return provider selected through environment."""
    raw_value = os.environ.get(LLM_PROVIDER_ENV_VAR, "").strip().lower()
    if not raw_value:
        return DEFAULT_PROVIDER
    try:
        return LLMServiceProvider(raw_value)
    except ValueError as exc:
        raise LLMConfigurationError(
            f"Unsupported LLM provider in {LLM_PROVIDER_ENV_VAR}: {raw_value}"
        ) from exc


def _resolve_timeout() -> float:
    raw_value = os.environ.get(LLM_TIMEOUT_ENV_VAR, "").strip()
    if not raw_value:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise LLMConfigurationError(f"{LLM_TIMEOUT_ENV_VAR} must be a number.") from exc
    if timeout <= 0:
        raise LLMConfigurationError(f"{LLM_TIMEOUT_ENV_VAR} must be positive.")
    return timeout


def _resolve_model(*, env_var: str, fallback: str) -> str:
    raw_value = os.environ.get(env_var, "")
    resolved = raw_value.strip()
    return resolved if resolved else fallback
