"""Domain models for generated quizzes, questions, and attempts."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class Difficulty(StrEnum):
    """Supported difficulty levels for generated questions."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(StrEnum):
    """Balance between theoretical and mathematical questions."""

    THEORETICAL = "theoretical"
    MATHEMATICAL = "mathematical"
    MIXED = "mixed"


class SourceType(StrEnum):
    """Where quiz source text originates."""

    TEXT = "text"
    DOCUMENT = "document"
    UPLOAD = "upload"


class QuizStatus(StrEnum):
    """Lifecycle states of a persisted quiz record."""

    DRAFT = "draft"
    PROCESSING = "processing"
    READY = "ready"
    PUBLISHED = "published"
    FAILED = "failed"


class SummaryStyle(StrEnum):
    """Summary layouts supported by the summarizer."""

    COMPREHENSIVE = "comprehensive"
    KEY_POINTS = "key_points"
    STUDY_GUIDE = "study_guide"


@dataclass(frozen=True)
class MCQQuestion:
    """One multiple-choice question with a 0-based correct option index."""

    question: str
    options: tuple[str, ...]
    correct_answer: int
    explanation: str = ""
    difficulty: Difficulty | None = None
    topic: str = ""

    @property
    def is_scoreable(self) -> bool:
        """Return whether correct_answer points to an existing option."""
        return 0 <= self.correct_answer < len(self.options)

    def to_payload(self) -> dict[str, object]:
        """Serialize into the JSON shape stored in questions_data."""
        return {
            "question": self.question,
            "options": list(self.options),
            "correctAnswer": self.correct_answer,
            "explanation": self.explanation,
            "difficulty": self.difficulty.value if self.difficulty is not None else None,
            "topic": self.topic,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> MCQQuestion:
        """Restore a question from stored JSON, tolerating missing fields."""
        raw_options = payload.get("options")
        options = (
            tuple(str(option) for option in raw_options)
            if isinstance(raw_options, list)
            else ()
        )
        raw_correct = payload.get("correctAnswer")
        correct_answer = (
            raw_correct
            if isinstance(raw_correct, int) and not isinstance(raw_correct, bool)
            else -1
        )
        raw_difficulty = payload.get("difficulty")
        difficulty = (
            Difficulty(raw_difficulty)
            if raw_difficulty in {item.value for item in Difficulty}
            else None
        )
        return cls(
            question=str(payload.get("question") or ""),
            options=options,
            correct_answer=correct_answer,
            explanation=str(payload.get("explanation") or ""),
            difficulty=difficulty,
            topic=str(payload.get("topic") or ""),
        )


@dataclass(frozen=True)
class QuizRecord:
    """Durable quiz entity as seen by readers after it is saved."""

    id: str
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
    status: QuizStatus
    summary: str | None
    questions: tuple[MCQQuestion, ...]
    created_at: datetime
    updated_at: datetime | None = None
    description: str | None = None
    document_id: str | None = None
    source_text: str | None = None
    uploaded_file_path: str | None = None
    uploaded_file_name: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class SubmittedAnswer:
    """Raw answer submitted by a student."""

    question_index: int
    selected_answer: int


@dataclass(frozen=True)
class ScoredAnswer:
    """Submitted answer after scoring."""

    question_index: int
    selected_answer: int
    is_correct: bool


@dataclass(frozen=True)
class QuizAttempt:
    """Persisted student attempt with its score."""

    id: str
    quiz_id: str
    student_id: str
    answers: tuple[ScoredAnswer, ...]
    score: int
    total_questions: int
    created_at: datetime
    time_spent_seconds: int | None = None
