"""Local text extraction for uploaded documents by MIME type."""

from __future__ import annotations

import asyncio
import logging
from io import BytesIO
from zipfile import BadZipFile

import docx
from docx.opc.exceptions import PackageNotFoundError

from quizforge.application.errors import QuizValidationError, StageContentError
from quizforge.application.ports import TextExtractor
from quizforge.application.progress import PipelineStage
from quizforge.application.text_normalizer import (
    join_pages,
    normalize_page_text,
    strip_page_markers,
)
from quizforge.domain.documents import ExtractedDocument
from quizforge.domain.source import (
    DOCX_MIME_TYPE,
    MARKDOWN_MIME_TYPE,
    MIN_CONTENT_LENGTH,
    PDF_MIME_TYPE,
    PLAIN_TEXT_MIME_TYPE,
)
from quizforge.infrastructure.extraction.composite import CompositePdfExtractor

LOGGER = logging.getLogger(__name__)

_TEXT_MIME_TYPES = frozenset({PLAIN_TEXT_MIME_TYPE, MARKDOWN_MIME_TYPE})


class DocumentTextExtractor(TextExtractor):
    """Pull text out of PDF, plain text, Markdown, and DOCX bytes.

    Extraction is local. Only PDFs whose cleaned text is shorter than the
    minimum content length ask for OCR; unreadable PDFs are treated as
    scanned. Parsing runs in a worker thread.
    """

    def __init__(self, pdf_extractor: CompositePdfExtractor | None = None) -> None:
        self._pdf_extractor = pdf_extractor or CompositePdfExtractor()

    async def extract(self, content: bytes, mime_type: str) -> ExtractedDocument:
        return await asyncio.to_thread(self.extract_sync, content, mime_type)

    def extract_sync(self, content: bytes, mime_type: str) -> ExtractedDocument:
        """Blocking variant of extract."""
        if mime_type == PDF_MIME_TYPE:
            return self._extract_pdf(content)
        if mime_type in _TEXT_MIME_TYPES:
            text = normalize_page_text(content.decode("utf-8", errors="replace"))
            return _build_document([text], strategy="utf-8", allow_ocr=False)
        if mime_type == DOCX_MIME_TYPE:
            return _build_document([_read_docx(content)], strategy="python-docx", allow_ocr=False)

        raise QuizValidationError(
            f"Unsupported document type: {mime_type}.",
            stage=PipelineStage.EXTRACTING,
        )

    def _extract_pdf(self, content: bytes) -> ExtractedDocument:
        try:
            result = self._pdf_extractor.extract(content)
        except Exception as exc:
            LOGGER.warning(
                "event=pdf_extraction_failed size=%s error_type=%s needs_ocr=True",
                len(content),
                exc.__class__.__name__,
            )
            return ExtractedDocument(text="", needs_ocr=True, strategy="unreadable")

        pages = [normalize_page_text(page) for page in result.selected.pages]
        document = _build_document(pages, strategy=result.selected.strategy, allow_ocr=True)
        LOGGER.info(
            (
                "event=pdf_extraction_completed strategy=%s page_count=%s used_fallback=%s "
                "likely_scanned=%s length=%s needs_ocr=%s"
            ),
            result.selected.strategy,
            result.selected.page_count,
            result.used_fallback,
            result.selected_quality.likely_scanned,
            len(document.text),
            document.needs_ocr,
        )
        return document


def _build_document(pages: list[str], *, strategy: str, allow_ocr: bool) -> ExtractedDocument:
    text = join_pages(pages)
    needs_ocr = allow_ocr and len(strip_page_markers(text)) < MIN_CONTENT_LENGTH
    return ExtractedDocument(
        text="" if needs_ocr else text,
        needs_ocr=needs_ocr,
        page_count=len(pages),
        strategy=strategy,
    )


def _read_docx(content: bytes) -> str:
    try:
        document = docx.Document(BytesIO(content))
    except (PackageNotFoundError, BadZipFile, KeyError, ValueError) as exc:
        raise StageContentError(
            "Could not read DOCX file.",
            stage=PipelineStage.EXTRACTING,
        ) from exc

    paragraphs = [paragraph.text.strip() for paragraph in document.paragraphs]
    return normalize_page_text("\n".join(paragraph for paragraph in paragraphs if paragraph))
