"""Unit of work around the ``llm_calls`` audit table."""

from __future__ import annotations

from typing import cast

from sqlalchemy.orm import Session

from quizforge.application.llm_audit import LLMCallAuditRepository
from quizforge.infrastructure.db.llm_audit_repository import SqlAlchemyLlmCallAuditRepository
from quizforge.infrastructure.db.session_scope import InactiveRepository, SessionUnitOfWork


class SqlAlchemyLlmCallAuditUnitOfWork(SessionUnitOfWork):
    llm_calls: LLMCallAuditRepository

    def _bind(self, session: Session) -> None:
        self.llm_calls = SqlAlchemyLlmCallAuditRepository(session)

    def _unbind(self) -> None:
        self.llm_calls = cast(LLMCallAuditRepository, InactiveRepository())
