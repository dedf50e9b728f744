"""Session lifecycle shared by the SQLAlchemy units of work."""

from __future__ import annotations

from types import TracebackType
from typing import Any, Self

from sqlalchemy.orm import Session, sessionmaker

_INACTIVE_MESSAGE = "Unit of work is not active."


class InactiveRepository:
    """Stand-in for a repository outside ``with``; any method access raises."""

    def __getattr__(self, name: str) -> Any:
        raise RuntimeError(_INACTIVE_MESSAGE)


class SessionUnitOfWork:
    """Open a session on enter, roll back on error, close on exit.

    Subclasses attach their repositories in ``_bind`` and reset them to
    ``InactiveRepository`` in ``_unbind``.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None
        self._unbind()

    def __enter__(self) -> Self:
        self._session = self._session_factory()
        self._bind(self._session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        session, self._session = self._session, None
        self._unbind()
        if session is None:
            return
        if exc is not None:
            session.rollback()
        session.close()

    def commit(self) -> None:
        if self._session is None:
            raise RuntimeError(_INACTIVE_MESSAGE)
        self._session.commit()

    def rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()

    def _bind(self, session: Session) -> None:
        raise NotImplementedError

    def _unbind(self) -> None:
        raise NotImplementedError
