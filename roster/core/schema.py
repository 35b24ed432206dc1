"""
Schema reconciliation for the roster tables.

Runs once while the storage handle is built, according to the
configured schema policy. This is not a migration tool: 'update' only
adds missing tables and columns, it never alters or drops anything.
"""

import logging
from typing import Dict, List

from sqlalchemy import MetaData, inspect
from sqlalchemy.engine import Engine

from roster.core.exceptions import SchemaValidationError

logger = logging.getLogger(__name__)


def apply_schema_policy(engine: Engine, policy: str, metadata: MetaData = None) -> None:
    """
    Reconcile the database schema with the mapped models.

    Args:
        engine: Engine connected to the target database
        policy: One of validate, create, update, recreate
        metadata: Metadata to reconcile (defaults to the roster models)

    Raises:
        SchemaValidationError: If policy is 'validate' and tables/columns are missing
        ValueError: If policy is unknown
    """
    if metadata is None:
        # Import models to ensure metadata is populated
        from roster.models import Base

        metadata = Base.metadata

    if policy == "validate":
        problems = find_schema_problems(engine, metadata)
        if problems:
            raise SchemaValidationError(
                "Database schema does not match models: " + "; ".join(problems)
            )
    elif policy == "create":
        metadata.create_all(engine)
    elif policy == "update":
        metadata.create_all(engine)
        _add_missing_columns(engine, metadata)
    elif policy == "recreate":
        metadata.drop_all(engine)
        metadata.create_all(engine)
    else:
        raise ValueError(f"Unknown schema policy: {policy!r}")

    logger.info("Schema policy applied", extra={"operation": f"schema.{policy}"})


def find_schema_problems(engine: Engine, metadata: MetaData) -> List[str]:
    """
    List mapped tables and columns missing from the database.

    Returns:
        Human-readable problem descriptions (empty when schema matches)
    """
    existing = _existing_columns(engine)
    problems = []
    for table in metadata.sorted_tables:
        if table.name not in existing:
            problems.append(f"missing table {table.name}")
            continue
        for column in table.columns:
            if column.name not in existing[table.name]:
                problems.append(f"missing column {table.name}.{column.name}")
    return problems


def _existing_columns(engine: Engine) -> Dict[str, set]:
    inspector = inspect(engine)
    return {
        name: {column["name"] for column in inspector.get_columns(name)}
        for name in inspector.get_table_names()
    }


def _add_missing_columns(engine: Engine, metadata: MetaData) -> None:
    existing = _existing_columns(engine)
    preparer = engine.dialect.identifier_preparer
    ddl_compiler = engine.dialect.ddl_compiler(engine.dialect, None)
    with engine.begin() as conn:
        for table in metadata.sorted_tables:
            present = existing.get(table.name, set())
            for column in table.columns:
                if column.name in present:
                    continue
                # Existing rows have no value, so the column goes in nullable
                ddl = f"{preparer.format_column(column)} {column.type.compile(dialect=engine.dialect)}"
                default = ddl_compiler.get_column_default_string(column)
                if default is not None:
                    ddl += f" DEFAULT {default}"
                conn.exec_driver_sql(
                    f"ALTER TABLE {preparer.format_table(table)} ADD COLUMN {ddl}"
                )
                logger.info(
                    "Added missing column",
                    extra={"operation": "schema.update", "entity": f"{table.name}.{column.name}"}
                )
