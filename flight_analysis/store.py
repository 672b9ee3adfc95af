"""
FlightStore - the canonical flight record store.

One object owns the SQLAlchemy engine and session factory and exposes
every store operation. Request handlers and tests get a store passed in
rather than reaching for a module-level engine, so each can point at its
own database.

Transaction boundaries:
- Imports, duplicate, trim and delete run in one session transaction each;
  any exception rolls the whole operation back.
- Marker writes are single-statement transactions.
- Reads use short sessions without an explicit transaction.
"""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Generator, List, Optional, TextIO, Tuple

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from flight_analysis import deletion, derivation, markers
from flight_analysis.analytics.statistics import (
    SERIES_FIELDS,
    FlightStatistics,
    calculate_flight_statistics,
    series_values,
    variance_over_time,
)
from flight_analysis.config import config
from flight_analysis.errors import ValidationError
from flight_analysis.export import DEFAULT_EXPORT_FORMAT, export_flight
from flight_analysis.ingestion.csv_import import write_csv_flight
from flight_analysis.ingestion.csv_parser import (
    CSVImportOptions,
    extract_flight_title,
    parse_flight_csv,
)
from flight_analysis.ingestion.database_import import DatabaseImporter
from flight_analysis.models import (
    Aircraft,
    Flight,
    Marker,
    Position,
    create_db_engine,
    create_session_factory,
    ensure_schema,
    session_scope,
)
from flight_analysis import queries
from flight_analysis.queries import FlightData, FlightSummary

logger = logging.getLogger(__name__)


class FlightStore:
    """
    Canonical store for imported flights.

    Args:
        url: SQLAlchemy database URL (defaults to DATABASE_URL)
        engine: Existing engine to use instead of creating one
        echo: Log SQL statements
    """

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
        echo: Optional[bool] = None,
    ):
        if engine is None:
            engine = create_db_engine(
                url or config.database.url,
                echo=config.database.echo if echo is None else echo,
            )
        self.engine = engine
        self.Session = create_session_factory(engine)

    def __repr__(self) -> str:
        return f'<FlightStore {self.engine.url}>'

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Transactional session: commit on success, rollback on error."""
        with session_scope(self.Session) as session:
            yield session

    def dispose(self) -> None:
        self.engine.dispose()

    # -------------------------------------------------------------------------
    # Schema
    # -------------------------------------------------------------------------

    def ensure_schema(self) -> None:
        ensure_schema(self.engine)

    # -------------------------------------------------------------------------
    # Imports
    # -------------------------------------------------------------------------

    def import_from_database_file(self, path: str) -> List[FlightSummary]:
        """Import every flight of a logbook database in one transaction."""
        with DatabaseImporter(path) as importer:
            with self.session() as session:
                flights = importer.run(session)
        logger.info(f'Imported {len(flights)} flights from {os.path.basename(path)}')
        return flights

    def import_from_csv(
        self,
        reader: TextIO,
        options: Optional[CSVImportOptions] = None,
    ) -> FlightSummary:
        """Parse a CSV flight log and store it as one single-aircraft flight."""
        metadata, records = parse_flight_csv(reader, options)
        with self.session() as session:
            flight = write_csv_flight(session, metadata, records)
            return queries.summarize_flight(flight)

    def import_csv_file(self, path: str, filename: Optional[str] = None) -> FlightSummary:
        """Import a CSV file, titling the flight after its (uploaded) name."""
        options = CSVImportOptions(
            title=extract_flight_title(filename or os.path.basename(path)),
            skip_rows=config.ingestion.csv_skip_rows,
        )
        with open(path, newline='', encoding='utf-8-sig') as f:
            return self.import_from_csv(f, options)

    def import_upload(self, path: str, filename: str) -> List[FlightSummary]:
        """
        Route an uploaded file to the importer for its extension.

        Raises:
            ValidationError: unsupported extension.
        """
        ext = Path(filename).suffix.lower()
        if ext in config.upload.csv_extensions:
            return [self.import_csv_file(path, filename)]
        if ext in config.upload.database_extensions:
            return self.import_from_database_file(path)
        raise ValidationError(
            f"Unsupported file type '{ext}'. Allowed: "
            f"{', '.join(config.upload.allowed_extensions)}"
        )

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_flights(self) -> List[FlightSummary]:
        with self.Session() as session:
            return queries.list_flights(session)

    def get_flight(self, flight_id: int) -> FlightSummary:
        with self.Session() as session:
            return queries.summarize_flight(queries.get_flight(session, flight_id))

    def get_flight_data(self, flight_id: int) -> FlightData:
        with self.Session() as session:
            return queries.get_flight_data(session, flight_id)

    def database_stats(self) -> dict:
        """Row counts and database file size."""
        with self.Session() as session:
            stats = {
                'flight_count': session.scalar(select(func.count()).select_from(Flight)),
                'aircraft_count': session.scalar(select(func.count()).select_from(Aircraft)),
                'position_count': session.scalar(select(func.count()).select_from(Position)),
                'marker_count': session.scalar(select(func.count()).select_from(Marker)),
            }

        database = self.engine.url.database
        if self.engine.dialect.name == 'sqlite' and database and database != ':memory:':
            size = os.path.getsize(database) if os.path.exists(database) else 0
            stats['db_size_bytes'] = size
            stats['db_size_mb'] = round(size / (1024 * 1024), 2)

        return stats

    # -------------------------------------------------------------------------
    # Derivations and deletion
    # -------------------------------------------------------------------------

    def duplicate_flight(self, flight_id: int, new_title: str) -> int:
        with self.session() as session:
            return derivation.duplicate_flight(session, flight_id, new_title)

    def trim_flight(
        self,
        flight_id: int,
        new_title: str,
        start_seconds: float,
        end_seconds: float,
        shared_clock: Optional[bool] = None,
    ) -> int:
        # Range errors are raised before a session is opened
        derivation.validate_trim_range(start_seconds, end_seconds)
        with self.session() as session:
            return derivation.trim_flight(
                session, flight_id, new_title, start_seconds, end_seconds,
                shared_clock=shared_clock,
            )

    def delete_flight(self, flight_id: int) -> Dict[str, int]:
        with self.session() as session:
            return deletion.delete_flight(session, flight_id)

    # -------------------------------------------------------------------------
    # Statistics and export
    # -------------------------------------------------------------------------

    def compute_statistics(self, flight_id: int) -> Dict[str, FlightStatistics]:
        return calculate_flight_statistics(self.get_flight_data(flight_id).positions)

    def compute_variance(
        self,
        flight_id: int,
        field: str = 'airspeed',
        window_size: Optional[int] = None,
    ) -> Dict[str, List[float]]:
        """Sliding-window variance of one series per aircraft."""
        if field not in SERIES_FIELDS:
            raise ValidationError(
                f"Unknown series '{field}', expected one of {', '.join(SERIES_FIELDS)}"
            )
        window_size = window_size or config.analysis.variance_window
        data = self.get_flight_data(flight_id)
        return {
            label: variance_over_time(series_values(points, field), window_size)
            for label, points in data.positions.items()
        }

    def export_csv(
        self,
        flight_id: int,
        export_format: str = DEFAULT_EXPORT_FORMAT,
    ) -> Tuple[str, bytes]:
        """Returns (filename, zip bytes)."""
        with self.Session() as session:
            raw_title = queries.get_flight(session, flight_id).title
            data = queries.get_flight_data(session, flight_id)
        return export_flight(data, raw_title, export_format)

    # -------------------------------------------------------------------------
    # Markers
    # -------------------------------------------------------------------------

    def list_markers(self, flight_id: int) -> List[Marker]:
        with self.Session() as session:
            return markers.list_markers(session, flight_id)

    def create_marker(
        self,
        flight_id: int,
        time_seconds: float,
        label: str,
        marker_type: str = 'regular',
    ) -> Marker:
        with self.session() as session:
            return markers.create_marker(session, flight_id, time_seconds, label, marker_type)

    def delete_marker(self, marker_id: int) -> None:
        with self.session() as session:
            markers.delete_marker(session, marker_id)

    def upsert_trim_marker(
        self,
        flight_id: int,
        kind: str,
        time_seconds: float,
        label: str = '',
    ) -> Marker:
        with self.session() as session:
            return markers.upsert_trim_marker(session, flight_id, kind, time_seconds, label)

    def get_trim_markers(self, flight_id: int) -> Dict[str, Optional[Marker]]:
        with self.Session() as session:
            return markers.get_trim_markers(session, flight_id)

    def delete_trim_markers(self, flight_id: int) -> int:
        with self.session() as session:
            return markers.delete_trim_markers(session, flight_id)

    def create_distance_markers(
        self,
        flight_id: int,
        reference: Optional[Tuple[float, float]] = None,
        reference_name: Optional[str] = None,
        distance_nm: Optional[float] = None,
    ) -> List[Marker]:
        with self.session() as session:
            return markers.create_distance_markers(
                session,
                flight_id,
                reference or config.markers.reference_location,
                reference_name or config.markers.reference_name,
                distance_nm or config.markers.distance_nm,
                config.markers.tolerance_nm,
            )
