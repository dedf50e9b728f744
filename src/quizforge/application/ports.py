"""Capability ports for collaborators driven by the quiz pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from quizforge.domain.documents import ExtractedDocument, OCRDocument, StoredFile
from quizforge.domain.quiz import (
    Difficulty,
    MCQQuestion,
    QuestionType,
    QuizStatus,
    SourceType,
    SummaryStyle,
)


@dataclass(frozen=True)
class SummaryRequest:
    """Summarizer input."""

    text: str
    style: SummaryStyle
    language: str
    correlation_id: str | None = None


@dataclass(frozen=True)
class SummaryResult:
    """Summarizer output."""

    summary: str
    word_count: int
    style: SummaryStyle


@dataclass(frozen=True)
class GenerationParameters:
    """Question generator input."""

    summary: str
    num_questions: int
    difficulty: Difficulty
    question_type: QuestionType
    language: str
    topic: str | None = None
    correlation_id: str | None = None


@dataclass(frozen=True)
class QuizDraft:
    """Complete quiz payload handed to the persistence gateway."""

    teacher_id: str
    title: str
    subject: str
    grade: str
    topic: str | None
    difficulty: Difficulty
    question_type: QuestionType
    language: str
    num_questions: int
    source_type: SourceType
    summary: str
    questions: tuple[MCQQuestion, ...]
    status: QuizStatus = QuizStatus.READY
    description: str | None = None
    document_id: str | None = None
    source_text: str | None = None
    uploaded_file_path: str | None = None
    uploaded_file_name: str | None = None


class ObjectStore(Protocol):
    """Durable file storage for raw uploads."""

    async def upload(
        self,
        *,
        owner_id: str,
        content: bytes,
        mime_type: str,
        filename: str,
    ) -> StoredFile:
        """Persist bytes and return their storage location."""
        ...

    async def create_signed_url(self, storage_path: str, *, expires_in_seconds: int) -> str:
        """Return a time-limited URL for reading stored bytes."""
        ...

    async def remove(self, storage_path: str) -> None:
        """Delete stored bytes; an already missing object is not an error."""
        ...


class TextExtractor(Protocol):
    """Local text extraction from raw document bytes."""

    async def extract(self, content: bytes, mime_type: str) -> ExtractedDocument:
        """Pull machine-readable text out of document bytes."""
        ...


class OcrService(Protocol):
    """Optical character recognition over an already stored file."""

    async def convert(self, storage_path: str, file_name: str) -> OCRDocument:
        """Convert scanned pages to markdown text."""
        ...


class DocumentTextSource(Protocol):
    """Read access to previously ingested documents."""

    async def get_document_text(self, document_id: str) -> str:
        """Return the stored text of a document."""
        ...


class Summarizer(Protocol):
    """Language-model summarization stage."""

    async def summarize(self, request: SummaryRequest) -> SummaryResult:
        """Condense cleaned text into a summary."""
        ...


class QuestionGenerator(Protocol):
    """Language-model multiple-choice question stage."""

    async def generate(self, parameters: GenerationParameters) -> list[MCQQuestion]:
        """Produce questions from a summary."""
        ...


class QuizGateway(Protocol):
    """Single write point that makes a quiz visible to readers."""

    async def create_quiz(self, draft: QuizDraft) -> str:
        """Persist a quiz and return its identifier."""
        ...
