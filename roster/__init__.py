"""
Roster: persistence layer for students and their certificates.

Exposes the storage handle, unit of work, ORM models and the two
repositories built on top of them.
"""

from roster.core.database import StorageHandle, get_storage_handle
from roster.core.exceptions import (
    AmbiguousResult,
    InvalidArgument,
    PersistenceFailure,
    RecordNotFound,
    RosterError,
    SchemaValidationError,
    StorageConstructionError,
)
from roster.core.unit_of_work import UnitOfWork
from roster.models import Certificate, Student
from roster.query import Operator, Predicate
from roster.repositories import CertificateRepository, StudentRepository

__all__ = [
    "StorageHandle",
    "get_storage_handle",
    "UnitOfWork",
    "Student",
    "Certificate",
    "StudentRepository",
    "CertificateRepository",
    "Predicate",
    "Operator",
    "RosterError",
    "StorageConstructionError",
    "SchemaValidationError",
    "PersistenceFailure",
    "InvalidArgument",
    "AmbiguousResult",
    "RecordNotFound",
]
