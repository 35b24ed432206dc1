"""
Base repository shared by the student and certificate repositories.

Every public operation opens exactly one unit of work from the injected
storage handle, does its work and leaves it. Entities come back
detached with their relationships loaded, so they stay usable after
the session is gone.
"""

import logging
from typing import ClassVar, Generic, List, Optional, Type, TypeVar

from sqlalchemy import bindparam, func, select
from sqlalchemy.exc import MultipleResultsFound

from roster.core.database import StorageHandle
from roster.core.exceptions import AmbiguousResult, InvalidArgument, RecordNotFound
from roster.core.logging_config import log_with_context
from roster.query import Predicate, column_for, validate_predicates

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """
    Generic CRUD and query operations for one mapped model.

    Subclasses set ``model`` and ``entity_name``.

    Attributes:
        storage: Storage handle every unit of work comes from
    """

    model: ClassVar[Type]
    entity_name: ClassVar[str]

    def __init__(self, storage: StorageHandle):
        """
        Initialize repository with a storage handle.

        Args:
            storage: Shared storage handle
        """
        self.storage = storage

    def save(self, entity: ModelT) -> ModelT:
        """
        Persist a new entity (and, through cascades, what it owns).

        An entity that already carries an identity is merged instead,
        overwriting the stored record.

        Args:
            entity: Entity to persist

        Returns:
            The persisted entity with its identity assigned

        Raises:
            InvalidArgument: If the entity fails pre-checks
            PersistenceFailure: If the write fails (nothing is committed)
        """
        self._check_entity(entity)
        self._prepare_for_write(entity)

        with self.storage.unit_of_work(f"{self.entity_name}.save") as uow:
            if entity.id is None:
                uow.session.add(entity)
                saved = entity
            else:
                saved = uow.session.merge(entity)
            uow.session.flush()
            # Load eager relationships so the detached result is complete
            uow.session.refresh(saved)
            entity_id = saved.id

        log_with_context(
            logger, "info", f"{self.model.__name__} saved",
            operation="save", entity=self.entity_name, entity_id=entity_id
        )
        return saved

    def get_by_id(self, entity_id) -> Optional[ModelT]:
        """
        Look up an entity by identity.

        Returns:
            The entity, or None if no record has this identity
        """
        self._check_id(entity_id)
        with self.storage.unit_of_work(f"{self.entity_name}.get_by_id", read_only=True) as uow:
            return uow.session.get(self.model, entity_id)

    def update(self, entity: ModelT, must_exist: bool = False) -> ModelT:
        """
        Overwrite the stored record with the entity's values (merge).

        With the default ``must_exist=False`` an identity unknown to
        storage is inserted rather than rejected. Pass ``must_exist=True``
        to refuse that.

        Args:
            entity: Entity carrying a previously assigned identity
            must_exist: Fail instead of inserting when the identity is unknown

        Returns:
            The merged entity as stored

        Raises:
            InvalidArgument: If the entity has no identity
            RecordNotFound: If must_exist is set and the identity is unknown
            PersistenceFailure: If the write fails
        """
        self._check_entity(entity)
        if entity.id is None:
            raise InvalidArgument(
                f"Cannot update a {self.entity_name} without an id; use save() for new records"
            )
        self._prepare_for_write(entity)

        with self.storage.unit_of_work(f"{self.entity_name}.update") as uow:
            if must_exist and uow.session.get(self.model, entity.id) is None:
                raise RecordNotFound(f"{self.model.__name__} with id {entity.id} not found")
            merged = uow.session.merge(entity)
            # Reload so the returned graph matches what was written
            uow.session.flush()
            uow.session.refresh(merged)

        log_with_context(
            logger, "info", f"{self.model.__name__} updated",
            operation="update", entity=self.entity_name, entity_id=merged.id
        )
        return merged

    def delete(self, entity_id) -> bool:
        """
        Delete an entity by identity.

        Returns:
            True if a record was deleted, False if none had this identity
        """
        self._check_id(entity_id)
        with self.storage.unit_of_work(f"{self.entity_name}.delete") as uow:
            entity = uow.session.get(self.model, entity_id)
            if entity is not None:
                self._delete_entity(uow.session, entity)

        found = entity is not None
        log_with_context(
            logger, "info",
            f"{self.model.__name__} with ID {entity_id} "
            + ("deleted successfully" if found else "not found"),
            operation="delete", entity=self.entity_name, entity_id=entity_id
        )
        return found

    def get_all(self) -> List[ModelT]:
        """
        Get every record of this type, ordered by identity.

        Returns:
            List of all entities (empty if there are none)
        """
        stmt = select(self.model).order_by(self.model.id)
        with self.storage.unit_of_work(f"{self.entity_name}.get_all", read_only=True) as uow:
            return list(uow.session.execute(stmt).scalars().unique().all())

    def count(self) -> int:
        """Number of stored records of this type."""
        stmt = select(func.count()).select_from(self.model)
        with self.storage.unit_of_work(f"{self.entity_name}.count", read_only=True) as uow:
            return uow.session.execute(stmt).scalar_one()

    def find_by(self, field_name: str, value) -> List[ModelT]:
        """
        Find all records whose field equals value.

        Args:
            field_name: Mapped column name
            value: Value to match

        Returns:
            Matching entities ordered by identity

        Raises:
            InvalidArgument: If field_name is not a mapped column
        """
        return self.find_matching(Predicate(field_name, value))

    def find_matching(self, *predicates: Predicate) -> List[ModelT]:
        """
        Find all records satisfying every predicate.

        Returns:
            Matching entities ordered by identity

        Raises:
            InvalidArgument: On an unknown field or operator
        """
        checked = validate_predicates(self.model, predicates)
        stmt = select(self.model).order_by(self.model.id)
        for predicate in checked:
            stmt = stmt.where(predicate.to_clause(self.model))

        with self.storage.unit_of_work(f"{self.entity_name}.find", read_only=True) as uow:
            return list(uow.session.execute(stmt).scalars().unique().all())

    def _find_unique(self, field_name: str, value) -> Optional[ModelT]:
        """
        Look up the single record whose field equals value.

        The value is passed as a named bound parameter. None matches
        NULL, as it does for an equality Predicate.

        Raises:
            AmbiguousResult: If more than one record matches
        """
        column = column_for(self.model, field_name)
        if value is None:
            stmt = select(self.model).where(column.is_(None))
            params = {}
        else:
            stmt = select(self.model).where(column == bindparam("match_value"))
            params = {"match_value": value}

        with self.storage.unit_of_work(f"{self.entity_name}.find_unique", read_only=True) as uow:
            result = uow.session.execute(stmt, params)
            try:
                return result.scalars().unique().one_or_none()
            except MultipleResultsFound as exc:
                raise AmbiguousResult(
                    f"More than one {self.entity_name} has {field_name} = {value!r}"
                ) from exc

    def _check_entity(self, entity) -> None:
        if not isinstance(entity, self.model):
            raise InvalidArgument(
                f"Expected a {self.model.__name__}, got {type(entity).__name__}"
            )

    def _check_id(self, entity_id) -> None:
        if entity_id is None:
            raise InvalidArgument(f"A {self.entity_name} id is required")

    def _prepare_for_write(self, entity) -> None:
        """Hook for model-specific checks and fix-ups run before the unit of work opens."""

    def _delete_entity(self, session, entity) -> None:
        session.delete(entity)
