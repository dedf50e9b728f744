"""Pipeline stages, progress waypoints, and observer notification."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

LOGGER = logging.getLogger(__name__)


class PipelineStage(StrEnum):
    """States of one quiz generation run."""

    IDLE = "idle"
    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    OCR = "ocr"
    SUMMARIZING = "summarizing"
    GENERATING = "generating"
    SAVING = "saving"
    COMPLETED = "completed"
    FAILED = "failed"


class Waypoint:
    """Fixed progress percentages reported at stage transitions."""

    UPLOAD_STARTED = 2
    DOCUMENT_FETCH_STARTED = 5
    EXTRACTION_STARTED = 8
    OCR_STARTED = 10
    OCR_COMPLETED = 20
    SUMMARY_STARTED = 25
    SUMMARY_COMPLETED = 35
    GENERATION_STARTED = 40
    GENERATION_COMPLETED = 85
    SAVE_STARTED = 90
    COMPLETED = 100
    FAILED = 0


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification delivered to the caller."""

    run_id: str
    stage: PipelineStage
    progress: int
    message: str | None = None
    error: str | None = None


ProgressObserver = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Emit monotonic progress events to an optional observer."""

    def __init__(self, run_id: str, observer: ProgressObserver | None = None) -> None:
        self._run_id = run_id
        self._observer = observer
        self._last_progress = 0

    def report(
        self,
        stage: PipelineStage,
        progress: int,
        message: str | None = None,
    ) -> ProgressEvent:
        """Record a non-failure transition; progress never moves backwards."""
        if stage is PipelineStage.FAILED:
            raise ValueError("Use fail() to report terminal failure.")

        self._last_progress = max(self._last_progress, min(progress, Waypoint.COMPLETED))
        event = ProgressEvent(
            run_id=self._run_id,
            stage=stage,
            progress=self._last_progress,
            message=message,
        )
        self._emit(event)
        return event

    def fail(self, message: str) -> ProgressEvent:
        """Record terminal failure at the fixed failure waypoint."""
        event = ProgressEvent(
            run_id=self._run_id,
            stage=PipelineStage.FAILED,
            progress=Waypoint.FAILED,
            message=message,
            error=message,
        )
        self._emit(event)
        return event

    def _emit(self, event: ProgressEvent) -> None:
        if self._observer is None:
            return

        try:
            self._observer(event)
        except Exception as exc:
            LOGGER.exception(
                "event=progress_observer_failed correlation_id=%s stage=%s progress=%s "
                "error_type=%s",
                self._run_id,
                event.stage.value,
                event.progress,
                exc.__class__.__name__,
            )
