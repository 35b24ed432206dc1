"""
Storage handle: engine and session factory lifecycle.

The handle is built once per process (or once per explicitly constructed
handle) on first use and then only hands out units of work. Building is
guarded by a lock so concurrent first callers all see the same finished
session factory. A failed build is final: every later call re-raises the
same StorageConstructionError.
"""

import logging
import threading
from pathlib import Path
from types import TracebackType
from typing import Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from roster.core.config import Settings, settings as default_settings
from roster.core.exceptions import PersistenceFailure, StorageConstructionError
from roster.core.schema import apply_schema_policy
from roster.core.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


def build_engine(config: Settings) -> Engine:
    """
    Create and configure the SQLAlchemy engine.

    For SQLite:
    - Enables check_same_thread=False so pooled connections can move between threads
    - Uses StaticPool for in-memory databases (one shared connection)
    - Turns on foreign key enforcement and, for file databases, WAL mode

    Args:
        config: Storage settings

    Returns:
        Configured Engine instance
    """
    url = config.sqlalchemy_url()
    is_sqlite = url.get_backend_name() == "sqlite"
    in_memory = is_sqlite and url.database in (None, "", ":memory:")

    engine_kwargs = {
        "echo": config.echo_sql,
        "connect_args": {"check_same_thread": False} if is_sqlite else {},
    }

    # An in-memory database lives and dies with its connection
    if in_memory:
        engine_kwargs["poolclass"] = StaticPool
    else:
        engine_kwargs["pool_pre_ping"] = True

    if is_sqlite and not in_memory:
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ANN001
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if not in_memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine


class StorageHandle:
    """
    Shared, lazily built producer of units of work.

    Safe to use from any number of threads. Pass one handle into every
    repository that should talk to the same database.

    Attributes:
        settings: Storage settings the handle was built from
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else default_settings
        self._lock = threading.Lock()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._failure: Optional[StorageConstructionError] = None
        self._failure_tb: Optional[TracebackType] = None

    @property
    def engine(self) -> Engine:
        self._ensure_built()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """
        The session factory, built on first access.

        Raises:
            StorageConstructionError: If building failed (now or earlier)
        """
        self._ensure_built()
        return self._session_factory

    def _ensure_built(self) -> None:
        # Fast path: once published, the factory is never replaced
        if self._session_factory is not None:
            return
        with self._lock:
            if self._failure is not None:
                # Re-raise with the build-time traceback
                raise self._failure.with_traceback(self._failure_tb)
            if self._session_factory is None:
                try:
                    self._build()
                except StorageConstructionError as exc:
                    self._failure_tb = exc.__traceback__
                    raise

    def _build(self) -> None:
        engine = None
        try:
            engine = build_engine(self.settings)
            apply_schema_policy(engine, self.settings.schema_policy)
            factory = sessionmaker(
                bind=engine,
                class_=Session,
                expire_on_commit=False,  # Returned entities stay readable after close
                autoflush=False,
            )
        except Exception as exc:
            if engine is not None:
                engine.dispose()
            if isinstance(exc, StorageConstructionError):
                failure = exc
            else:
                failure = StorageConstructionError(f"Error building storage handle: {exc}")
                failure.__cause__ = exc
            self._failure = failure
            logger.error(
                "Storage handle construction failed",
                exc_info=True,
                extra={"operation": "storage.build"}
            )
            raise failure

        self._engine = engine
        # Publish last: readers on the fast path only check this attribute
        self._session_factory = factory
        logger.info(
            "Storage handle ready",
            extra={
                "operation": "storage.build",
                "dialect": engine.dialect.name,
                "schema_policy": self.settings.schema_policy,
            }
        )

    def unit_of_work(self, name: str = "unit_of_work", read_only: bool = False) -> UnitOfWork:
        """
        Create a new, unentered unit of work.

        Args:
            name: Operation label for logs and errors
            read_only: No explicit transaction, no commit

        Returns:
            UnitOfWork to be used in a ``with`` block

        Raises:
            StorageConstructionError: If the handle cannot be built
        """
        return UnitOfWork(self.session_factory, name=name, read_only=read_only)

    def check_connection(self) -> bool:
        """
        Check if database connection is healthy.

        Returns:
            True if database is reachable, False otherwise
        """
        try:
            with self.unit_of_work("health.check", read_only=True) as uow:
                uow.session.execute(text("SELECT 1"))
            return True
        except (StorageConstructionError, PersistenceFailure) as exc:
            logger.warning("Database health check failed: %s", exc)
            return False

    def get_database_info(self) -> dict:
        """
        Get database information for monitoring.

        Returns:
            Dictionary with dialect, driver, masked URL and schema policy
        """
        url = self.settings.sqlalchemy_url()
        return {
            "url": url.render_as_string(hide_password=True),
            "dialect": url.get_backend_name(),
            "driver": url.get_driver_name(),
            "schema_policy": self.settings.schema_policy,
            "built": self._session_factory is not None,
        }

    def dispose(self) -> None:
        """
        Close pooled connections.

        The handle stays usable; new connections are opened on demand.
        """
        if self._engine is not None:
            self._engine.dispose()


_default_handle: Optional[StorageHandle] = None
_default_handle_lock = threading.Lock()


def get_storage_handle() -> StorageHandle:
    """
    Get the process-wide default storage handle.

    Built from the global settings on first call. Drivers that wire
    repositories themselves can construct their own StorageHandle instead.

    Returns:
        StorageHandle singleton instance
    """
    global _default_handle
    if _default_handle is None:
        with _default_handle_lock:
            if _default_handle is None:
                _default_handle = StorageHandle(default_settings)
    return _default_handle
