"""Translate LLM failures into pipeline stage errors."""

from __future__ import annotations

from quizforge.application.errors import (
    PipelineError,
    StageTransportError,
    StageUnavailableError,
)
from quizforge.application.llm import LLMApplicationError, MissingApiKeyLLMError
from quizforge.infrastructure.llm.errors import LLMConfigurationError, LLMInfrastructureError

LLM_ERRORS = (LLMApplicationError, LLMInfrastructureError)


def to_stage_error(error: Exception, *, action: str) -> PipelineError:
    """Map an LLM error to the pipeline taxonomy; stage is attached by the caller."""
    if isinstance(error, (MissingApiKeyLLMError, LLMConfigurationError)):
        return StageUnavailableError(f"{action} is not configured: {error}")
    return StageTransportError(f"{action} failed: {error}")
