"""Composite PDF extraction strategy with fallback selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from quizforge.infrastructure.extraction.pdf_extractors import (
    ExtractedPdfContent,
    PdfMinerExtractor,
    PdfTextExtractor,
    PyPdfExtractor,
)
from quizforge.infrastructure.extraction.quality import (
    PdfExtractionQuality,
    evaluate_pdf_extraction_quality,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompositePdfExtractionResult:
    """Selected extraction and decision metadata."""

    selected: ExtractedPdfContent
    selected_quality: PdfExtractionQuality
    used_fallback: bool


class CompositePdfExtractor:
    """Run the primary extractor and consult the fallback when quality is poor."""

    def __init__(
        self,
        primary: PdfTextExtractor | None = None,
        fallback: PdfTextExtractor | None = None,
    ) -> None:
        self._primary = primary or PyPdfExtractor()
        self._fallback = fallback or PdfMinerExtractor()

    def extract(self, content: bytes) -> CompositePdfExtractionResult:
        primary = self._primary.extract(content)
        primary_quality = evaluate_pdf_extraction_quality(primary.pages)
        kept = CompositePdfExtractionResult(primary, primary_quality, used_fallback=False)
        if not primary_quality.needs_fallback:
            return kept

        try:
            fallback = self._fallback.extract(content)
        except Exception as exc:
            LOGGER.warning(
                "event=pdf_fallback_failed strategy=%s error_type=%s",
                self._fallback.strategy_name,
                exc.__class__.__name__,
            )
            return kept

        fallback_quality = evaluate_pdf_extraction_quality(fallback.pages)
        if not _prefer_fallback(primary_quality, fallback_quality):
            return kept
        return CompositePdfExtractionResult(fallback, fallback_quality, used_fallback=True)


def _prefer_fallback(primary: PdfExtractionQuality, fallback: PdfExtractionQuality) -> bool:
    # an empty fallback never wins; otherwise it needs a 10% better score
    if fallback.is_empty:
        return False
    return primary.is_empty or fallback.score > primary.score * 1.1
