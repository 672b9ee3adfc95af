"""
Schema manager - creates and migrates the canonical database.

ensure_schema() runs on every startup and is idempotent:

1. No flight table: create the whole baseline schema from the model
   metadata.
2. Otherwise: create any canonical table that is missing (databases made
   before markers existed), add optional columns introduced later, then
   create missing indexes.

Migrations are additive only. Nothing is dropped, renamed or reordered,
so a logbook opened directly as the canonical store keeps every row.
"""

import logging
from typing import Tuple

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from flight_analysis.errors import SchemaError
from flight_analysis.models.base import Base

# Register every table on Base.metadata
from flight_analysis.models import aircraft, flight, marker, telemetry  # noqa: F401

logger = logging.getLogger(__name__)

# (table, column, column DDL) added to databases created before the column
OPTIONAL_COLUMNS: Tuple[Tuple[str, str, str], ...] = (
    ('position', 'indicated_airspeed', 'REAL'),
    ('markers', 'type', "TEXT NOT NULL DEFAULT 'regular'"),
)


def ensure_schema(engine: Engine) -> None:
    """
    Make the canonical schema complete.

    Raises:
        SchemaError: any DDL failure. The store cannot run on a partial
            schema, so callers treat this as fatal.
    """
    try:
        if not inspect(engine).has_table('flight'):
            logger.info('Canonical schema not found, creating baseline tables')
            Base.metadata.create_all(bind=engine)
            return

        created = _create_missing_tables(engine)
        added = _add_missing_columns(engine)
        indexed = _create_missing_indexes(engine)
    except SQLAlchemyError as e:
        raise SchemaError(f'Schema setup failed: {e}') from e

    if created or added or indexed:
        logger.info(
            f'Schema migrated: {created} tables, {added} columns, '
            f'{indexed} indexes added'
        )
    else:
        logger.debug('Schema up to date')


def _create_missing_tables(engine: Engine) -> int:
    inspector = inspect(engine)
    created = 0
    for table in Base.metadata.sorted_tables:
        if not inspector.has_table(table.name):
            logger.info(f'Creating missing table {table.name}')
            table.create(bind=engine)
            created += 1
    return created


def _add_missing_columns(engine: Engine) -> int:
    inspector = inspect(engine)
    added = 0
    with engine.begin() as conn:
        for table_name, column_name, ddl in OPTIONAL_COLUMNS:
            existing = {c['name'] for c in inspector.get_columns(table_name)}
            if column_name in existing:
                continue
            logger.info(f'Adding column {table_name}.{column_name}')
            conn.execute(text(f'ALTER TABLE "{table_name}" ADD COLUMN {column_name} {ddl}'))
            added += 1
    return added


def _create_missing_indexes(engine: Engine) -> int:
    inspector = inspect(engine)
    created = 0
    for table in Base.metadata.sorted_tables:
        existing = {ix['name'] for ix in inspector.get_indexes(table.name)}
        for index in table.indexes:
            if index.name not in existing:
                index.create(bind=engine)
                created += 1
    return created
