"""
Repositories for roster entities.

Each repository takes the shared StorageHandle and opens one unit of
work per operation.
"""

from roster.repositories.base import BaseRepository
from roster.repositories.certificate import CertificateRepository
from roster.repositories.student import StudentRepository

__all__ = [
    "BaseRepository",
    "StudentRepository",
    "CertificateRepository",
]
