"""Stage artifacts produced while turning a document into text."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StoredFile:
    """Upload persisted in the object store."""

    storage_path: str
    file_name: str
    size: int
    mime_type: str


@dataclass(frozen=True)
class ExtractedDocument:
    """Text extraction outcome; empty text is a normal result."""

    text: str
    needs_ocr: bool
    page_count: int | None = None
    strategy: str | None = None


@dataclass(frozen=True)
class BoundingBox:
    """Image position on an OCR page."""

    top_left_x: float
    top_left_y: float
    bottom_right_x: float
    bottom_right_y: float


@dataclass(frozen=True)
class OCRImage:
    """Embedded image recovered by OCR."""

    id: str
    page_number: int
    image_index: int
    mime_type: str
    content: bytes
    bbox: BoundingBox | None = None
    description: str = ""


@dataclass(frozen=True)
class OCRDocument:
    """Per-page markdown plus images returned by the OCR stage."""

    pages: tuple[str, ...]
    images: tuple[OCRImage, ...]
    file_name: str

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text(self) -> str:
        """Combine pages, adding separators only for multi-page documents."""
        parts: list[str] = []
        for index, page in enumerate(self.pages, start=1):
            if len(self.pages) > 1:
                parts.append(f"--- Page {index} ---")
            parts.append(page)
        return "\n\n".join(parts)


@dataclass(frozen=True)
class DocumentRecord:
    """Previously ingested document whose text can seed a quiz."""

    id: str
    teacher_id: str
    title: str
    content: str
    created_at: datetime
    file_name: str | None = None
