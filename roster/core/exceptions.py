"""
Exception hierarchy for the roster persistence layer.

Absence of a record is never an exception: lookups return None and
deletes return False. Everything here signals a real failure.
"""

from sqlalchemy.exc import DisconnectionError, OperationalError


class RosterError(Exception):
    """Base exception for roster"""
    pass


class StorageConstructionError(RosterError):
    """Raised when the storage handle cannot be built (fatal for the process)"""
    pass


class SchemaValidationError(StorageConstructionError):
    """Raised when the 'validate' schema policy finds missing tables or columns"""
    pass


class PersistenceFailure(RosterError):
    """
    Raised when a storage read, write or commit fails.

    The original driver/ORM error is always available as ``__cause__``.
    """

    @property
    def is_transient(self) -> bool:
        """
        Whether the underlying failure looks like a connectivity problem.

        Callers decide whether to retry; nothing in roster retries on its own.
        """
        return isinstance(self.__cause__, (OperationalError, DisconnectionError))


class InvalidArgument(RosterError, ValueError):
    """Raised for bad pagination, predicate or entity arguments"""
    pass


class AmbiguousResult(RosterError):
    """Raised when a lookup on a unique-by-convention field matches several rows"""
    pass


class RecordNotFound(RosterError, LookupError):
    """Raised by strict updates that target an identity unknown to storage"""
    pass
