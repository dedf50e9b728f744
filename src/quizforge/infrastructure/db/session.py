"""Engine/session bootstrap for SQLite persistence."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from quizforge.infrastructure.db.config import get_database_path, make_sqlite_url
from quizforge.infrastructure.db.models import Base


def create_sqlite_engine(database_path: Path) -> Engine:
    """Create SQLite engine for provided database path."""
    database_path.parent.mkdir(parents=True, exist_ok=True)
    return create_engine(
        make_sqlite_url(database_path),
        future=True,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Create typed SQLAlchemy session factory."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        class_=Session,
    )


def init_schema(engine: Engine) -> None:
    """Create missing tables; existing tables are left untouched."""
    Base.metadata.create_all(engine)


def create_default_session_factory() -> sessionmaker[Session]:
    """Create session factory using configured local database path."""
    engine = create_sqlite_engine(get_database_path())
    init_schema(engine)
    return create_session_factory(engine)
