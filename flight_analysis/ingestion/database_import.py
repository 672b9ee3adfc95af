"""
Logbook database import - copies flights from a foreign SQLite file.

Flight-recorder logbooks (.sdlog/.sqlite/.db) share the canonical table
layout but carry their own primary keys, so every flight and aircraft is
re-keyed on the way in while telemetry timestamps are kept verbatim.

Import stages:
1. Open: source opened read-only through a SQLite URI
2. Verify: the five required tables must exist
3. Flights: newest start first, source id mapped to the new id
4. Aircraft: inserted under the new flight id
5. Series: position, attitude and engine rows (plus any supplementary
   series the source has) bulk-copied in batches

Only columns present on both sides are copied, so logbooks written
before a column was introduced still import. The caller owns the
transaction: any failure leaves the canonical store untouched.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Dict, List, Optional, Type

from sqlalchemy import create_engine, inspect, insert, select, table, column, Table
from sqlalchemy.engine import Connection, Engine, RowMapping
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from flight_analysis.config import config
from flight_analysis.errors import SourceSchemaError, transaction_step
from flight_analysis.models import (
    Aircraft,
    Flight,
    TELEMETRY_SERIES,
    display_title,
    display_flight_number,
)
from flight_analysis.models.telemetry import TelemetryMixin
from flight_analysis.queries import FlightSummary

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ('flight', 'aircraft', 'position', 'attitude', 'engine')

# Canonical columns never taken from the source
FLIGHT_EXCLUDED = ('id', 'creation_time')
AIRCRAFT_EXCLUDED = ('id', 'flight_id')


def open_source_database(path: str) -> Engine:
    """
    Read-only engine over a foreign SQLite file.

    Raises:
        SourceSchemaError: the file does not exist.
    """
    source = Path(path)
    if not source.is_file():
        raise SourceSchemaError(f'Source database not found: {path}')

    uri = f'{source.resolve().as_uri()}?mode=ro'
    return create_engine(
        'sqlite://',
        creator=lambda: sqlite3.connect(uri, uri=True, check_same_thread=False),
        poolclass=NullPool,
    )


class DatabaseImporter:
    """
    Copies every flight of one source database into the canonical store.

    Usage:
        with DatabaseImporter(path) as importer:
            flights = importer.run(session)
    """

    def __init__(self, source_path: str, batch_size: Optional[int] = None):
        self.source_path = source_path
        self.batch_size = batch_size or config.ingestion.batch_size

        self._engine: Optional[Engine] = None
        self._conn: Optional[Connection] = None
        self._source_columns: Dict[str, List[str]] = {}

    def __enter__(self) -> 'DatabaseImporter':
        self._engine = open_source_database(self.source_path)
        try:
            self._conn = self._engine.connect()
        except SQLAlchemyError as e:
            self._engine.dispose()
            raise SourceSchemaError(f'Cannot open source database: {e}') from e
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._conn is not None:
            self._conn.close()
        if self._engine is not None:
            self._engine.dispose()
        self._conn = None
        self._engine = None

    # -------------------------------------------------------------------------
    # Source inspection
    # -------------------------------------------------------------------------

    def verify_schema(self) -> None:
        """
        Check the required tables and record each table's columns.

        Raises:
            SourceSchemaError: a required table is missing or the file is
                not a SQLite database.
        """
        try:
            inspector = inspect(self._conn)
            tables = set(inspector.get_table_names())
            for name in REQUIRED_TABLES:
                if name not in tables:
                    raise SourceSchemaError(f"Required table '{name}' not found")

            for model in (Flight, Aircraft) + TELEMETRY_SERIES:
                name = model.__tablename__
                if name in tables:
                    self._source_columns[name] = [
                        c['name'] for c in inspector.get_columns(name)
                    ]
        except SQLAlchemyError as e:
            raise SourceSchemaError(f'Invalid source database: {e}') from e

    def _shared_columns(self, target: Table, excluded=()) -> List[str]:
        source = set(self._source_columns.get(target.name, ()))
        return [c.name for c in target.columns if c.name in source and c.name not in excluded]

    def _source_rows(self, table_name: str, columns: List[str], where=None, order_by=None):
        src = table(table_name, *(column(c) for c in columns))
        stmt = select(*src.c)
        if where is not None:
            stmt = stmt.where(where(src))
        if order_by is not None:
            stmt = stmt.order_by(order_by(src))
        return self._conn.execute(stmt).mappings()

    # -------------------------------------------------------------------------
    # Copy stages
    # -------------------------------------------------------------------------

    def _insert_flight(self, session: Session, source: RowMapping) -> int:
        target = Flight.__table__
        values = _without_null_defaults(
            {c: source[c] for c in self._shared_columns(target, FLIGHT_EXCLUDED)},
            target,
        )
        result = session.execute(insert(target).values(**values))
        return result.inserted_primary_key[0]

    def _insert_aircraft(self, session: Session, source: RowMapping, flight_id: int) -> int:
        target = Aircraft.__table__
        values = _without_null_defaults(
            {c: source[c] for c in self._shared_columns(target, AIRCRAFT_EXCLUDED)},
            target,
        )
        values['flight_id'] = flight_id
        result = session.execute(insert(target).values(**values))
        return result.inserted_primary_key[0]

    def _copy_series(
        self,
        session: Session,
        model: Type[TelemetryMixin],
        source_aircraft_id: int,
        new_aircraft_id: int,
    ) -> int:
        """
        Bulk-copy one series of one aircraft, timestamps unchanged.

        Returns count of rows copied.
        """
        target = model.__table__
        columns = self._shared_columns(target, ('aircraft_id',))
        rows = self._source_rows(
            target.name,
            columns + ['aircraft_id'],
            where=lambda src: src.c.aircraft_id == source_aircraft_id,
            order_by=lambda src: src.c.timestamp,
        )

        copied = 0
        for batch in rows.partitions(self.batch_size):
            records = [
                {**{c: row[c] for c in columns}, 'aircraft_id': new_aircraft_id}
                for row in batch
            ]
            session.execute(target.insert(), records)
            copied += len(records)
        return copied

    def _import_aircraft(self, session: Session, source_flight_id: int, new_flight_id: int) -> int:
        aircraft_columns = self._source_columns['aircraft']
        series = [m for m in TELEMETRY_SERIES if m.__tablename__ in self._source_columns]

        source_aircraft = self._source_rows(
            'aircraft',
            aircraft_columns,
            where=lambda src: src.c.flight_id == source_flight_id,
            order_by=lambda src: src.c.seq_nr,
        ).all()

        for source in source_aircraft:
            with transaction_step(f'import aircraft {source["id"]} of flight {source_flight_id}'):
                new_aircraft_id = self._insert_aircraft(session, source, new_flight_id)

            for model in series:
                name = model.__tablename__
                with transaction_step(f'copy {name} rows for aircraft {source["id"]}'):
                    copied = self._copy_series(session, model, source['id'], new_aircraft_id)
                logger.debug(f'Copied {copied} {name} rows for aircraft {source["id"]}')

        return len(source_aircraft)

    def run(self, session: Session) -> List[FlightSummary]:
        """
        Import all source flights inside the caller's transaction.

        Returns summaries of the new canonical flights, newest first.
        """
        if self._conn is None:
            raise RuntimeError('DatabaseImporter must be used as a context manager')

        self.verify_schema()

        flight_columns = self._source_columns['flight']
        with transaction_step('read source flights'):
            source_flights = self._source_rows(
                'flight',
                flight_columns,
                order_by=(
                    (lambda src: src.c.start_zulu_sim_time.desc())
                    if 'start_zulu_sim_time' in flight_columns else None
                ),
            ).all()

        if not source_flights:
            logger.warning(f'No flights found in {self.source_path}')

        imported = []
        for source in source_flights:
            with transaction_step(f'import flight {source["id"]}'):
                new_flight_id = self._insert_flight(session, source)

            aircraft_count = self._import_aircraft(session, source['id'], new_flight_id)

            imported.append(FlightSummary(
                id=new_flight_id,
                title=display_title(source.get('title')),
                flight_number=display_flight_number(source.get('flight_number')),
                start_time=source.get('start_zulu_sim_time') or '',
                end_time=source.get('end_zulu_sim_time') or '',
                source_id=source['id'],
            ))
            logger.info(
                f'Imported flight {source["id"]} as {new_flight_id} '
                f'with {aircraft_count} aircraft'
            )

        return imported


def _without_null_defaults(values: dict, target: Table) -> dict:
    """Drop NULLs for columns with a server default so the default applies."""
    return {
        k: v for k, v in values.items()
        if v is not None or target.c[k].server_default is None
    }
