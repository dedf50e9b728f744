"""Error types raised by the provider clients, retry executor and router."""

from __future__ import annotations

from quizforge.application.llm import (
    LLMRequestRejectedError,
    LLMResponseFormatError,
    LLMTemporaryError,
    MissingApiKeyLLMError,
)


class LLMInfrastructureError(RuntimeError):
    """Root of the infrastructure-side LLM errors."""


class LLMConfigurationError(LLMInfrastructureError):
    """A task has no route or the routed provider has no client."""


class MissingApiKeyError(MissingApiKeyLLMError, LLMInfrastructureError):
    """Neither the environment nor the keyring holds the routed provider key."""


class LLMExecutionError(LLMTemporaryError, LLMInfrastructureError):
    """Transient failure after retries; the message is safe to show a teacher."""


class ProviderResponseError(LLMResponseFormatError, LLMInfrastructureError):
    """HTTP 2xx whose body lacks the expected completion fields."""


class ProviderRequestError(LLMRequestRejectedError, LLMInfrastructureError):
    """HTTP 4xx other than 429; retrying would not help."""


class ProviderRateLimitError(LLMInfrastructureError):
    """HTTP 429."""


class ProviderServerError(LLMInfrastructureError):
    """HTTP 5xx."""


class LLMRetryExhaustedError(LLMInfrastructureError):
    """Every attempt allowed by the retry policy failed transiently."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts
