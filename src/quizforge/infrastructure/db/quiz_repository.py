"""SQLAlchemy repositories for quizzes, documents, and attempts."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import cast
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from quizforge.application.ports import QuizDraft
from quizforge.application.quiz_persistence import (
    AttemptRepository,
    DocumentRepository,
    QuizRepository,
)
from quizforge.domain.documents import DocumentRecord
from quizforge.domain.quiz import (
    Difficulty,
    MCQQuestion,
    QuestionType,
    QuizAttempt,
    QuizRecord,
    QuizStatus,
    ScoredAnswer,
    SourceType,
)
from quizforge.infrastructure.db.models import DocumentModel, QuizAttemptModel, QuizModel

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class SqlAlchemyQuizRepository(QuizRepository):
    """Persist and read quizzes via SQLAlchemy session."""

    def __init__(self, session: Session, *, now: Clock = utc_now) -> None:
        self._session = session
        self._now = now

    def add_quiz(self, draft: QuizDraft) -> QuizRecord:
        model = QuizModel(
            id=_new_id(),
            teacher_id=draft.teacher_id,
            title=draft.title,
            description=draft.description,
            subject=draft.subject,
            grade=draft.grade,
            topic=draft.topic,
            difficulty=draft.difficulty.value,
            question_type=draft.question_type.value,
            language=draft.language,
            num_questions=draft.num_questions,
            source_type=draft.source_type.value,
            document_id=draft.document_id,
            source_text=draft.source_text,
            uploaded_file_path=draft.uploaded_file_path,
            uploaded_file_name=draft.uploaded_file_name,
            summary=draft.summary,
            questions_data=[question.to_payload() for question in draft.questions],
            status=draft.status.value,
            error_message=None,
            created_at=self._now(),
            updated_at=None,
        )
        self._session.add(model)
        self._session.flush()
        return _to_quiz_record(model)

    def get_quiz(self, quiz_id: str) -> QuizRecord | None:
        model = self._session.get(QuizModel, quiz_id)
        return _to_quiz_record(model) if model is not None else None

    def list_quizzes(
        self,
        *,
        teacher_id: str | None = None,
        status: QuizStatus | None = None,
        subject: str | None = None,
        grade: str | None = None,
    ) -> list[QuizRecord]:
        statement = select(QuizModel)
        if teacher_id is not None:
            statement = statement.where(QuizModel.teacher_id == teacher_id)
        if status is not None:
            statement = statement.where(QuizModel.status == status.value)
        if subject is not None:
            statement = statement.where(QuizModel.subject == subject)
        if grade is not None:
            statement = statement.where(QuizModel.grade == grade)
        statement = statement.order_by(QuizModel.created_at.desc())

        return [_to_quiz_record(model) for model in self._session.execute(statement).scalars()]

    def update_status(
        self,
        quiz_id: str,
        status: QuizStatus,
        *,
        error_message: str | None = None,
    ) -> QuizRecord | None:
        model = self._session.get(QuizModel, quiz_id)
        if model is None:
            return None

        model.status = status.value
        model.error_message = error_message
        model.updated_at = self._now()
        self._session.flush()
        return _to_quiz_record(model)

    def update_quiz(
        self,
        quiz_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        summary: str | None = None,
        questions: tuple[MCQQuestion, ...] | None = None,
        num_questions: int | None = None,
    ) -> QuizRecord | None:
        model = self._session.get(QuizModel, quiz_id)
        if model is None:
            return None

        if title is not None:
            model.title = title
        if description is not None:
            model.description = description
        if summary is not None:
            model.summary = summary
        if questions is not None:
            model.questions_data = [question.to_payload() for question in questions]
        if num_questions is not None:
            model.num_questions = num_questions
        model.updated_at = self._now()
        self._session.flush()
        return _to_quiz_record(model)

    def delete_quiz(self, quiz_id: str) -> bool:
        model = self._session.get(QuizModel, quiz_id)
        if model is None:
            return False

        self._session.delete(model)
        self._session.flush()
        return True


class SqlAlchemyDocumentRepository(DocumentRepository):
    """Persist ingested documents."""

    def __init__(self, session: Session, *, now: Clock = utc_now) -> None:
        self._session = session
        self._now = now

    def add_document(
        self,
        *,
        teacher_id: str,
        title: str,
        content: str,
        file_name: str | None = None,
    ) -> DocumentRecord:
        model = DocumentModel(
            id=_new_id(),
            teacher_id=teacher_id,
            title=title,
            file_name=file_name,
            content=content,
            created_at=self._now(),
        )
        self._session.add(model)
        self._session.flush()
        return _to_document_record(model)

    def get_document(self, document_id: str) -> DocumentRecord | None:
        model = self._session.get(DocumentModel, document_id)
        return _to_document_record(model) if model is not None else None


class SqlAlchemyAttemptRepository(AttemptRepository):
    """Persist scored quiz attempts."""

    def __init__(self, session: Session, *, now: Clock = utc_now) -> None:
        self._session = session
        self._now = now

    def add_attempt(
        self,
        *,
        quiz_id: str,
        student_id: str,
        answers: tuple[ScoredAnswer, ...],
        score: int,
        total_questions: int,
        time_spent_seconds: int | None = None,
    ) -> QuizAttempt:
        model = QuizAttemptModel(
            id=_new_id(),
            quiz_id=quiz_id,
            student_id=student_id,
            answers=[
                {
                    "questionIndex": answer.question_index,
                    "selectedAnswer": answer.selected_answer,
                    "isCorrect": answer.is_correct,
                }
                for answer in answers
            ],
            score=score,
            total_questions=total_questions,
            time_spent_seconds=time_spent_seconds,
            created_at=self._now(),
        )
        self._session.add(model)
        self._session.flush()
        return _to_attempt(model)

    def list_attempts(
        self,
        *,
        quiz_id: str | None = None,
        student_id: str | None = None,
    ) -> list[QuizAttempt]:
        statement = select(QuizAttemptModel)
        if quiz_id is not None:
            statement = statement.where(QuizAttemptModel.quiz_id == quiz_id)
        if student_id is not None:
            statement = statement.where(QuizAttemptModel.student_id == student_id)
        statement = statement.order_by(QuizAttemptModel.created_at.desc())
        return [_to_attempt(model) for model in self._session.execute(statement).scalars()]


def _to_quiz_record(model: QuizModel) -> QuizRecord:
    return QuizRecord(
        id=model.id,
        teacher_id=model.teacher_id,
        title=model.title,
        subject=model.subject,
        grade=model.grade,
        topic=model.topic,
        difficulty=Difficulty(model.difficulty),
        question_type=QuestionType(model.question_type),
        language=model.language,
        num_questions=model.num_questions,
        source_type=SourceType(model.source_type),
        status=QuizStatus(model.status),
        summary=model.summary,
        questions=tuple(MCQQuestion.from_payload(item) for item in model.questions_data or []),
        created_at=model.created_at,
        updated_at=model.updated_at,
        description=model.description,
        document_id=model.document_id,
        source_text=model.source_text,
        uploaded_file_path=model.uploaded_file_path,
        uploaded_file_name=model.uploaded_file_name,
        error_message=model.error_message,
    )


def _to_document_record(model: DocumentModel) -> DocumentRecord:
    return DocumentRecord(
        id=model.id,
        teacher_id=model.teacher_id,
        title=model.title,
        content=model.content,
        created_at=model.created_at,
        file_name=model.file_name,
    )


def _to_attempt(model: QuizAttemptModel) -> QuizAttempt:
    answers = tuple(
        ScoredAnswer(
            question_index=cast(int, item.get("questionIndex", -1)),
            selected_answer=cast(int, item.get("selectedAnswer", -1)),
            is_correct=bool(item.get("isCorrect", False)),
        )
        for item in model.answers or []
    )
    return QuizAttempt(
        id=model.id,
        quiz_id=model.quiz_id,
        student_id=model.student_id,
        answers=answers,
        score=model.score,
        total_questions=model.total_questions,
        created_at=model.created_at,
        time_spent_seconds=model.time_spent_seconds,
    )


def _new_id() -> str:
    return str(uuid4())
