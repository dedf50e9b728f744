"""Database infrastructure package."""

from quizforge.infrastructure.db.config import get_database_path, make_sqlite_url
from quizforge.infrastructure.db.llm_audit_uow import SqlAlchemyLlmCallAuditUnitOfWork
from quizforge.infrastructure.db.session import (
    create_default_session_factory,
    create_session_factory,
    create_sqlite_engine,
    init_schema,
)
from quizforge.infrastructure.db.unit_of_work import SqlAlchemyQuizUnitOfWork

__all__ = [
    "SqlAlchemyLlmCallAuditUnitOfWork",
    "SqlAlchemyQuizUnitOfWork",
    "create_default_session_factory",
    "create_session_factory",
    "create_sqlite_engine",
    "get_database_path",
    "init_schema",
    "make_sqlite_url",
]
