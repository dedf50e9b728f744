"""Failure taxonomy surfaced by the quiz generation pipeline."""

from __future__ import annotations

from quizforge.application.progress import PipelineStage


class PipelineError(RuntimeError):
    """Base error carrying a user-facing message and the failing stage."""

    def __init__(self, message: str, *, stage: PipelineStage | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage is None:
            return self.message
        return f"[{self.stage.value}] {self.message}"


class QuizValidationError(PipelineError):
    """Source specification or input content is unusable; no network call was made."""


class StageUnavailableError(PipelineError):
    """Required collaborator is not configured."""


class StageTransportError(PipelineError):
    """Collaborator call failed: network, non-2xx response, or malformed body."""


class StageContentError(PipelineError):
    """Collaborator succeeded but returned content the pipeline cannot use."""
