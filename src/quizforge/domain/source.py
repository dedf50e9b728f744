"""Source specification and generation request contracts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

from quizforge.domain.quiz import Difficulty, QuestionType, SourceType

MIN_CONTENT_LENGTH = 50
MIN_QUESTIONS = 1
MAX_QUESTIONS = 50
DEFAULT_NUM_QUESTIONS = 15
DEFAULT_LANGUAGE = "tr"
MAX_UPLOAD_BYTES = 200 * 1024 * 1024

PDF_MIME_TYPE = "application/pdf"
PLAIN_TEXT_MIME_TYPE = "text/plain"
MARKDOWN_MIME_TYPE = "text/markdown"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
ALLOWED_UPLOAD_MIME_TYPES = frozenset(
    {PDF_MIME_TYPE, PLAIN_TEXT_MIME_TYPE, MARKDOWN_MIME_TYPE, DOCX_MIME_TYPE}
)


@dataclass(frozen=True)
class TextSource:
    """Inline raw text supplied by the caller."""

    source_type: ClassVar[SourceType] = SourceType.TEXT

    text: str


@dataclass(frozen=True)
class DocumentSource:
    """Reference to a document that was ingested earlier."""

    source_type: ClassVar[SourceType] = SourceType.DOCUMENT

    document_id: str


@dataclass(frozen=True)
class UploadSource:
    """Fresh file upload with declared MIME type."""

    source_type: ClassVar[SourceType] = SourceType.UPLOAD

    content: bytes
    mime_type: str
    filename: str


SourceSpecification = TextSource | DocumentSource | UploadSource


@dataclass(frozen=True)
class QuizGenerationRequest:
    """Everything the pipeline needs to build one quiz."""

    teacher_id: str
    source: SourceSpecification
    title: str
    subject: str
    grade: str
    topic: str | None = None
    num_questions: int = DEFAULT_NUM_QUESTIONS
    difficulty: Difficulty = Difficulty.MEDIUM
    question_type: QuestionType = QuestionType.MIXED
    language: str = DEFAULT_LANGUAGE
    description: str | None = None

    @property
    def source_type(self) -> SourceType:
        return self.source.source_type
