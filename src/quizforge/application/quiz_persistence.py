"""Application ports and gateways for quiz, document, and attempt persistence."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from types import TracebackType
from typing import Protocol
from uuid import uuid4

from quizforge.application.errors import QuizValidationError
from quizforge.application.ports import ObjectStore, QuizDraft
from quizforge.domain.documents import DocumentRecord
from quizforge.domain.quiz import (
    MCQQuestion,
    QuizAttempt,
    QuizRecord,
    QuizStatus,
    ScoredAnswer,
)

LOGGER = logging.getLogger(__name__)


class QuizRepository(Protocol):
    """Repository port for generated quizzes."""

    def add_quiz(self, draft: QuizDraft) -> QuizRecord:
        """Persist a complete quiz draft."""
        ...

    def get_quiz(self, quiz_id: str) -> QuizRecord | None:
        """Return quiz by id."""
        ...

    def list_quizzes(
        self,
        *,
        teacher_id: str | None = None,
        status: QuizStatus | None = None,
        subject: str | None = None,
        grade: str | None = None,
    ) -> list[QuizRecord]:
        """Return quizzes ordered by newest first."""
        ...

    def update_status(
        self,
        quiz_id: str,
        status: QuizStatus,
        *,
        error_message: str | None = None,
    ) -> QuizRecord | None:
        """Change quiz status; returns None when quiz is missing."""
        ...

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
        """Overwrite the given editable fields; None leaves a field unchanged."""
        ...

    def delete_quiz(self, quiz_id: str) -> bool:
        """Delete quiz with its attempts; returns False when quiz is missing."""
        ...


class DocumentRepository(Protocol):
    """Repository port for ingested documents."""

    def add_document(
        self,
        *,
        teacher_id: str,
        title: str,
        content: str,
        file_name: str | None = None,
    ) -> DocumentRecord:
        """Persist document text."""
        ...

    def get_document(self, document_id: str) -> DocumentRecord | None:
        """Return document by id."""
        ...


class AttemptRepository(Protocol):
    """Repository port for student quiz attempts."""

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
        """Persist scored attempt."""
        ...

    def list_attempts(
        self,
        *,
        quiz_id: str | None = None,
        student_id: str | None = None,
    ) -> list[QuizAttempt]:
        """Return attempts matching every given filter, newest first."""
        ...


class QuizUnitOfWork(Protocol):
    """Unit-of-work port around quiz persistence operations."""

    quizzes: QuizRepository
    documents: DocumentRepository
    attempts: AttemptRepository

    def __enter__(self) -> QuizUnitOfWork:
        """Start transactional scope."""
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Finalize transactional scope."""
        ...

    def commit(self) -> None:
        """Commit current transaction."""
        ...

    def rollback(self) -> None:
        """Rollback current transaction."""
        ...


QuizUnitOfWorkFactory = Callable[[], QuizUnitOfWork]


class UnitOfWorkQuizGateway:
    """Persistence gateway that writes each quiz in its own transaction.

    Sessions are blocking, so async entry points hand the work to a worker
    thread. The record becomes visible to readers only after commit.
    """

    def __init__(
        self,
        uow_factory: QuizUnitOfWorkFactory,
        *,
        object_store: ObjectStore | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._object_store = object_store

    async def create_quiz(self, draft: QuizDraft) -> str:
        record = await asyncio.to_thread(self.save_quiz, draft)
        return record.id

    def save_quiz(self, draft: QuizDraft) -> QuizRecord:
        """Persist draft synchronously and return stored record."""
        correlation_id = str(uuid4())
        try:
            with self._uow_factory() as uow:
                record = uow.quizzes.add_quiz(draft)
                uow.commit()
        except Exception as exc:
            LOGGER.exception(
                (
                    "event=quiz_persist_failed correlation_id=%s quiz_id=- teacher_id=%s "
                    "source_type=%s question_count=%s error_type=%s"
                ),
                correlation_id,
                draft.teacher_id,
                draft.source_type.value,
                len(draft.questions),
                exc.__class__.__name__,
            )
            raise

        LOGGER.info(
            (
                "event=quiz_persisted correlation_id=%s quiz_id=%s teacher_id=%s "
                "source_type=%s status=%s question_count=%s"
            ),
            correlation_id,
            record.id,
            record.teacher_id,
            record.source_type.value,
            record.status.value,
            len(record.questions),
        )
        return record

    def get_quiz(self, quiz_id: str) -> QuizRecord | None:
        with self._uow_factory() as uow:
            return uow.quizzes.get_quiz(quiz_id)

    def list_quizzes(
        self,
        *,
        teacher_id: str | None = None,
        status: QuizStatus | None = None,
        subject: str | None = None,
        grade: str | None = None,
    ) -> list[QuizRecord]:
        with self._uow_factory() as uow:
            items = uow.quizzes.list_quizzes(
                teacher_id=teacher_id,
                status=status,
                subject=subject,
                grade=grade,
            )

        LOGGER.info(
            "event=quizzes_listed correlation_id=%s teacher_id=%s status=%s items_count=%s",
            str(uuid4()),
            teacher_id or "-",
            status.value if status is not None else "-",
            len(items),
        )
        return items

    def update_status(
        self,
        quiz_id: str,
        status: QuizStatus,
        *,
        error_message: str | None = None,
    ) -> QuizRecord | None:
        """Transition quiz status, e.g. publish or mark a caller-created shell failed."""
        if not quiz_id:
            raise ValueError("quiz_id is required")

        with self._uow_factory() as uow:
            record = uow.quizzes.update_status(quiz_id, status, error_message=error_message)
            if record is None:
                uow.rollback()
            else:
                uow.commit()

        LOGGER.info(
            "event=quiz_status_updated correlation_id=%s quiz_id=%s status=%s found=%s",
            str(uuid4()),
            quiz_id,
            status.value,
            record is not None,
        )
        return record

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
        """Apply a teacher's edits to a stored quiz."""
        if not quiz_id:
            raise ValueError("quiz_id is required")
        if title is not None and not title.strip():
            raise QuizValidationError("Quiz title must not be empty.")
        if num_questions is not None and num_questions < 1:
            raise QuizValidationError("num_questions must be positive.")

        with self._uow_factory() as uow:
            record = uow.quizzes.update_quiz(
                quiz_id,
                title=title,
                description=description,
                summary=summary,
                questions=questions,
                num_questions=num_questions,
            )
            if record is None:
                uow.rollback()
            else:
                uow.commit()

        LOGGER.info(
            "event=quiz_updated correlation_id=%s quiz_id=%s found=%s question_count=%s",
            str(uuid4()),
            quiz_id,
            record is not None,
            len(record.questions) if record is not None else "-",
        )
        return record

    async def delete_quiz(self, quiz_id: str) -> bool:
        """Remove the stored upload, then the quiz and its attempts.

        A storage failure propagates and leaves the quiz in place.
        """
        if not quiz_id:
            raise ValueError("quiz_id is required")

        record = await asyncio.to_thread(self.get_quiz, quiz_id)
        if record is None:
            return False

        if record.uploaded_file_path:
            if self._object_store is None:
                LOGGER.warning(
                    "event=quiz_upload_kept quiz_id=%s storage_path=%s reason=no_object_store",
                    quiz_id,
                    record.uploaded_file_path,
                )
            else:
                await self._object_store.remove(record.uploaded_file_path)

        deleted = await asyncio.to_thread(self._delete_record, quiz_id)
        LOGGER.info(
            "event=quiz_deleted correlation_id=%s quiz_id=%s found=%s",
            str(uuid4()),
            quiz_id,
            deleted,
        )
        return deleted

    def _delete_record(self, quiz_id: str) -> bool:
        with self._uow_factory() as uow:
            deleted = uow.quizzes.delete_quiz(quiz_id)
            uow.commit()
        return deleted


class UnitOfWorkDocumentLibrary:
    """Store ingested documents and serve their text to the pipeline."""

    def __init__(self, uow_factory: QuizUnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def add_document(
        self,
        *,
        teacher_id: str,
        title: str,
        content: str,
        file_name: str | None = None,
    ) -> DocumentRecord:
        with self._uow_factory() as uow:
            record = uow.documents.add_document(
                teacher_id=teacher_id,
                title=title,
                content=content,
                file_name=file_name,
            )
            uow.commit()

        LOGGER.info(
            "event=document_stored document_id=%s teacher_id=%s length=%s",
            record.id,
            record.teacher_id,
            len(record.content),
        )
        return record

    async def get_document_text(self, document_id: str) -> str:
        record = await asyncio.to_thread(self._load_document, document_id)
        if record is None:
            raise QuizValidationError(f"Document not found: {document_id}.")
        return record.content

    def _load_document(self, document_id: str) -> DocumentRecord | None:
        with self._uow_factory() as uow:
            return uow.documents.get_document(document_id)
