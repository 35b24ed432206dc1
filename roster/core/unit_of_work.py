"""
Unit of work: one bounded, non-shared interaction with storage.

Every repository operation opens exactly one unit of work, does its
work through ``uow.session`` and leaves the ``with`` block. Mutating
units commit on success and roll back on failure; read-only units just
release. The session is closed exactly once on every exit path.

Example:
    with UnitOfWork(session_factory, name="student.save") as uow:
        uow.session.add(student)
    # committed and closed here
"""

import logging
import threading
import time
from types import TracebackType
from typing import Optional, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from roster.core.exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Transactional scope around a single SQLAlchemy session.

    Not safe for concurrent use: the session may only be touched from the
    thread that entered the unit of work, and a unit of work cannot be
    entered twice.

    Attributes:
        name: Operation label used in logs and error messages
        read_only: Skip the explicit transaction and the commit
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        name: str = "unit_of_work",
        read_only: bool = False
    ):
        self._session_factory = session_factory
        self.name = name
        self.read_only = read_only
        self._session: Optional[Session] = None
        self._owner_thread: Optional[int] = None
        self._started_at: Optional[float] = None
        self._released = False

    @property
    def session(self) -> Session:
        """
        The active session.

        Raises:
            RuntimeError: Outside the ``with`` block or from another thread
        """
        if self._session is None:
            raise RuntimeError(f"{self.name}: unit of work is not active")
        if threading.get_ident() != self._owner_thread:
            raise RuntimeError(f"{self.name}: unit of work used from a different thread")
        return self._session

    @property
    def active(self) -> bool:
        return self._session is not None

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> "UnitOfWork":
        if self._session is not None or self._released:
            raise RuntimeError(f"{self.name}: unit of work cannot be entered twice")

        self._owner_thread = threading.get_ident()
        self._started_at = time.perf_counter()
        self._session = self._session_factory()
        if not self.read_only:
            try:
                self._session.begin()
            except SQLAlchemyError as exc:
                self._release()
                raise PersistenceFailure(f"{self.name}: could not begin transaction: {exc}") from exc
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> bool:
        try:
            if exc_type is None:
                if not self.read_only:
                    self.commit()
            elif not self.read_only:
                self.rollback()
        finally:
            self._release(failed=exc_type is not None)

        if isinstance(exc, SQLAlchemyError):
            raise PersistenceFailure(f"{self.name} failed: {exc}") from exc
        return False

    def commit(self) -> None:
        """
        Commit the transaction.

        Raises:
            PersistenceFailure: If the flush or commit fails (after rollback)
        """
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.rollback()
            raise PersistenceFailure(f"{self.name}: commit failed: {exc}") from exc

    def rollback(self) -> None:
        """
        Roll back the transaction.

        A failing rollback is logged; the error that caused the rollback
        is the one that propagates.
        """
        try:
            self.session.rollback()
        except SQLAlchemyError:
            logger.exception(
                "Rollback failed",
                extra={"operation": self.name}
            )

    def _release(self, failed: bool = False) -> None:
        if self._released:
            return
        session, self._session = self._session, None
        self._released = True
        try:
            session.close()
        finally:
            latency_ms = round((time.perf_counter() - self._started_at) * 1000, 3)
            logger.debug(
                "Unit of work %s",
                "rolled back" if failed and not self.read_only else "released",
                extra={"operation": self.name, "latency_ms": latency_ms}
            )
