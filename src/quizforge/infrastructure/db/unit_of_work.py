"""Unit of work for quizzes, library documents and student attempts."""

from __future__ import annotations

from typing import cast

from sqlalchemy.orm import Session, sessionmaker

from quizforge.application.quiz_persistence import (
    AttemptRepository,
    DocumentRepository,
    QuizRepository,
)
from quizforge.infrastructure.db.quiz_repository import (
    Clock,
    SqlAlchemyAttemptRepository,
    SqlAlchemyDocumentRepository,
    SqlAlchemyQuizRepository,
    utc_now,
)
from quizforge.infrastructure.db.session_scope import InactiveRepository, SessionUnitOfWork


class SqlAlchemyQuizUnitOfWork(SessionUnitOfWork):
    """All three repositories share one session and commit together."""

    quizzes: QuizRepository
    documents: DocumentRepository
    attempts: AttemptRepository

    def __init__(self, session_factory: sessionmaker[Session], *, now: Clock = utc_now) -> None:
        self._now = now
        super().__init__(session_factory)

    def _bind(self, session: Session) -> None:
        self.quizzes = SqlAlchemyQuizRepository(session, now=self._now)
        self.documents = SqlAlchemyDocumentRepository(session, now=self._now)
        self.attempts = SqlAlchemyAttemptRepository(session, now=self._now)

    def _unbind(self) -> None:
        self.quizzes = cast(QuizRepository, InactiveRepository())
        self.documents = cast(DocumentRepository, InactiveRepository())
        self.attempts = cast(AttemptRepository, InactiveRepository())
