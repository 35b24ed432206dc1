"""
Base models and mixins for SQLAlchemy ORM.

Provides the declarative base, the integer identity mixin and
common utilities for all database models.
"""

from typing import Any

from sqlalchemy import Column, Integer
from sqlalchemy.orm import declarative_base


# SQLAlchemy declarative base for all ORM models
Base = declarative_base()


class IdentityMixin:
    """
    Mixin that adds a storage-generated integer primary key.

    The value is assigned by the database on first insert (autoincrement)
    and never changed afterwards.

    Attributes:
        id: Integer primary key
    """

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Storage-assigned identity"
    )


class ModelMixin:
    """
    Mixin providing common model utilities.

    Adds helper methods for serialization and representation.
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Dictionary with all column values

        Note:
            Only includes columns, not relationships.
        """
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
        }

    def __repr__(self) -> str:
        attrs = ", ".join(
            f"{key}={repr(value)}"
            for key, value in self.to_dict().items()
            if key in ["id", "name", "code"]  # Key identifying fields
        )
        return f"{self.__class__.__name__}({attrs})"
