"""Primary/fallback extractors for PDF text, page by page."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from typing import Protocol

from pdfminer.high_level import extract_text as pdfminer_extract_text
from pdfminer.pdfpage import PDFPage
from pypdf import PdfReader


@dataclass(frozen=True)
class ExtractedPdfContent:
    """Per-page text plus extraction metadata."""

    pages: tuple[str, ...]
    strategy: str

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text(self) -> str:
        return "\n\n".join(self.pages).strip()


class PdfTextExtractor(Protocol):
    """Protocol for PDF text extractors."""

    strategy_name: str

    def extract(self, content: bytes) -> ExtractedPdfContent:
        """Extract per-page text from PDF bytes."""
        ...


class PyPdfExtractor:
    """Primary extractor using pypdf."""

    strategy_name = "pypdf"

    def extract(self, content: bytes) -> ExtractedPdfContent:
        reader = PdfReader(BytesIO(content))
        pages = tuple((page.extract_text() or "").strip() for page in reader.pages)
        return ExtractedPdfContent(pages=pages, strategy=self.strategy_name)


class PdfMinerExtractor:
    """Fallback extractor using pdfminer.six; pages are split on form feeds."""

    strategy_name = "pdfminer"

    def extract(self, content: bytes) -> ExtractedPdfContent:
        text = pdfminer_extract_text(BytesIO(content))
        page_count = _count_pages(content)
        chunks = [chunk.strip() for chunk in text.split("\f")]
        pages = (chunks + [""] * page_count)[:page_count] if page_count else chunks
        return ExtractedPdfContent(pages=tuple(pages), strategy=self.strategy_name)


def _count_pages(content: bytes) -> int:
    return sum(1 for _ in PDFPage.get_pages(BytesIO(content)))
