"""
SQLAlchemy ORM models for roster.

This module exports all database models and the declarative base.
Import models from this module to ensure they're registered with SQLAlchemy.
"""

from roster.models.base import Base, IdentityMixin, ModelMixin
from roster.models.student import Student
from roster.models.certificate import Certificate

__all__ = [
    # Base classes
    "Base",
    "IdentityMixin",
    "ModelMixin",
    # Models
    "Student",
    "Certificate",
]
