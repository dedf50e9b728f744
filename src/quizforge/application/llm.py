"""Application-level contracts for LLM providers and routing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol


class LLMTaskType(StrEnum):
    """Supported internal task types for model routing policy."""

    SUMMARIZE = "summarize"
    SUMMARY_COMPLETION = "summary_completion"
    MCQ_GENERATE = "mcq_generate"
    MCQ_DEDUPLICATE = "mcq_deduplicate"
    MCQ_REVIEW = "mcq_review"


class LLMServiceProvider(StrEnum):
    """Supported LLM providers."""

    FAL = "fal"
    OPENROUTER = "openrouter"


class LLMApplicationError(RuntimeError):
    """Base error for LLM failures visible to application services."""


class MissingApiKeyLLMError(LLMApplicationError):
    """Provider key is absent in every configured key store."""


class LLMTemporaryError(LLMApplicationError):
    """Provider is temporarily unavailable; retry budget is spent."""


class LLMRequestRejectedError(LLMApplicationError):
    """Provider rejected request as non-retryable client error."""


class LLMResponseFormatError(LLMApplicationError):
    """Provider answered but output cannot be parsed."""

    def __init__(self, message: str, *, invalid_output: str = "") -> None:
        super().__init__(message)
        self.invalid_output = invalid_output


@dataclass(frozen=True)
class LLMRequest:
    """Application-level request contract for routed LLM invocation."""

    task_type: LLMTaskType
    system_prompt: str
    user_prompt: str
    correlation_id: str
    max_output_tokens: int = 4000
    temperature: float = 0.3


@dataclass(frozen=True)
class ProviderCallRequest:
    """Provider-agnostic DTO for concrete provider clients."""

    model: str
    api_key: str
    system_prompt: str
    user_prompt: str
    max_output_tokens: int
    temperature: float
    timeout_seconds: float


@dataclass(frozen=True)
class ProviderCallResponse:
    """Provider-agnostic DTO for normalized provider responses."""

    output_text: str
    input_tokens: int | None
    output_tokens: int | None


@dataclass(frozen=True)
class LLMCompletion:
    """Application-level response contract for routed LLM invocation."""

    llm_call_id: str
    provider: LLMServiceProvider
    model: str
    prompt_hash: str
    latency_ms: int
    output_text: str
    input_tokens: int | None
    output_tokens: int | None


class LLMProvider(Protocol):
    """Provider protocol implemented by infrastructure HTTP clients."""

    @property
    def provider(self) -> LLMServiceProvider:
        """Return provider identity."""
        ...

    async def generate(self, request: ProviderCallRequest) -> ProviderCallResponse:
        """Call provider and return provider-agnostic response DTO."""
        ...


class LLMGateway(Protocol):
    """Routed completion entry point used by summarizer and generator."""

    async def complete(self, request: LLMRequest) -> LLMCompletion:
        """Run one routed completion."""
        ...


class LLMKeyStore(Protocol):
    """Storage port for provider API keys."""

    def set_key(self, provider: LLMServiceProvider, api_key: str) -> None:
        """Persist API key for provider."""
        ...

    def get_key(self, provider: LLMServiceProvider) -> str | None:
        """Load API key for provider if present."""
        ...

    def delete_key(self, provider: LLMServiceProvider) -> None:
        """Delete provider key from storage."""
        ...
