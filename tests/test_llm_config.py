"""Tests for router default model and provider resolution from environment variables."""

from __future__ import annotations

import pytest

from quizforge.application.llm import LLMServiceProvider, LLMTaskType
from quizforge.infrastructure.llm.config import (
    DEFAULT_MCQ_DEDUP_MODEL,
    DEFAULT_MCQ_MODEL,
    DEFAULT_MCQ_REVIEW_MODEL,
    DEFAULT_SUMMARY_MODEL,
    DEFAULT_TIMEOUT_SECONDS,
    LLM_PROVIDER_ENV_VAR,
    LLM_TIMEOUT_ENV_VAR,
    MCQ_DEDUP_MODEL_ENV_VAR,
    MCQ_MODEL_ENV_VAR,
    MCQ_REVIEW_MODEL_ENV_VAR,
    SUMMARY_MODEL_ENV_VAR,
    TaskRoute,
    default_router_config,
    default_routes,
    resolve_provider,
    validate_routing_policy,
)
from quizforge.infrastructure.llm.errors import LLMConfigurationError

_MODEL_ENV_VARS = (
    SUMMARY_MODEL_ENV_VAR,
    MCQ_MODEL_ENV_VAR,
    MCQ_DEDUP_MODEL_ENV_VAR,
    MCQ_REVIEW_MODEL_ENV_VAR,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (*_MODEL_ENV_VARS, LLM_PROVIDER_ENV_VAR, LLM_TIMEOUT_ENV_VAR):
        monkeypatch.delenv(name, raising=False)


def test_default_routes_use_builtin_models_when_env_missing() -> None:
    routes = default_routes()

    assert routes[LLMTaskType.SUMMARIZE].model == DEFAULT_SUMMARY_MODEL
    assert routes[LLMTaskType.SUMMARY_COMPLETION].model == DEFAULT_SUMMARY_MODEL
    assert routes[LLMTaskType.MCQ_GENERATE].model == DEFAULT_MCQ_MODEL
    assert routes[LLMTaskType.MCQ_DEDUPLICATE].model == DEFAULT_MCQ_DEDUP_MODEL
    assert routes[LLMTaskType.MCQ_REVIEW].model == DEFAULT_MCQ_REVIEW_MODEL
    assert {route.provider for route in routes.values()} == {LLMServiceProvider.FAL}


def test_default_routes_use_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LLM_PROVIDER_ENV_VAR, "OpenRouter")
    monkeypatch.setenv(MCQ_MODEL_ENV_VAR, "anthropic/claude-3.5-sonnet")
    monkeypatch.setenv(SUMMARY_MODEL_ENV_VAR, "   ")

    routes = default_routes()

    assert routes[LLMTaskType.MCQ_GENERATE].model == "anthropic/claude-3.5-sonnet"
    assert routes[LLMTaskType.SUMMARIZE].model == DEFAULT_SUMMARY_MODEL
    assert {route.provider for route in routes.values()} == {LLMServiceProvider.OPENROUTER}


def test_resolve_provider_rejects_unknown_value(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LLM_PROVIDER_ENV_VAR, "anthropic")

    with pytest.raises(LLMConfigurationError, match="Unsupported LLM provider"):
        resolve_provider()


def test_router_config_timeout_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    assert default_router_config().timeout_seconds == DEFAULT_TIMEOUT_SECONDS

    monkeypatch.setenv(LLM_TIMEOUT_ENV_VAR, "45")
    assert default_router_config().timeout_seconds == 45.0

    monkeypatch.setenv(LLM_TIMEOUT_ENV_VAR, "-1")
    with pytest.raises(LLMConfigurationError):
        default_router_config()


def test_validate_routing_policy_requires_every_task() -> None:
    routes = default_routes()
    del routes[LLMTaskType.MCQ_REVIEW]
    with pytest.raises(LLMConfigurationError, match="mcq_review"):
        validate_routing_policy(routes)

    routes = default_routes()
    routes[LLMTaskType.SUMMARIZE] = TaskRoute(provider=LLMServiceProvider.FAL, model=" ")
    with pytest.raises(LLMConfigurationError, match="Empty model"):
        validate_routing_policy(routes)
