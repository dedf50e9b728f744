"""Quality heuristics for extracted PDF text."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

MIN_CHARACTERS_PER_PAGE = 60
MAX_GARBAGE_RATIO = 0.2
MAX_EMPTY_PAGE_RATIO = 0.5


@dataclass(frozen=True)
class PdfExtractionQuality:
    """Heuristic quality assessment for extracted PDF text."""

    score: float
    text_length: int
    garbage_ratio: float
    empty_page_ratio: float
    is_empty: bool
    low_text_density: bool
    high_garbage_ratio: bool

    @property
    def likely_scanned(self) -> bool:
        return (
            self.is_empty
            or self.low_text_density
            or self.empty_page_ratio > MAX_EMPTY_PAGE_RATIO
        )

    @property
    def needs_fallback(self) -> bool:
        return self.likely_scanned or self.high_garbage_ratio


def evaluate_pdf_extraction_quality(pages: Sequence[str]) -> PdfExtractionQuality:
    """Score extracted pages; empty pages and replacement characters lower the score."""
    stripped_pages = [page.strip() for page in pages]
    text_length = sum(len(page) for page in stripped_pages)
    is_empty = text_length == 0

    non_whitespace = [char for page in stripped_pages for char in page if not char.isspace()]
    garbage_count = sum(
        1 for char in non_whitespace if (not char.isprintable()) or char == "\ufffd"
    )
    garbage_ratio = garbage_count / len(non_whitespace) if non_whitespace else 1.0

    page_total = max(len(stripped_pages), 1)
    empty_pages = sum(1 for page in stripped_pages if not page)
    empty_page_ratio = empty_pages / page_total if stripped_pages else 1.0

    score = 0.0 if is_empty else max(text_length - garbage_ratio * 100, 0.0)
    return PdfExtractionQuality(
        score=score,
        text_length=text_length,
        garbage_ratio=garbage_ratio,
        empty_page_ratio=empty_page_ratio,
        is_empty=is_empty,
        low_text_density=text_length / page_total < MIN_CHARACTERS_PER_PAGE,
        high_garbage_ratio=garbage_ratio > MAX_GARBAGE_RATIO,
    )
