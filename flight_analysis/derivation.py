"""
Derivation engine - full duplicates and time-trimmed copies of a flight.

Both operations build a brand-new flight and never touch the source rows.
Copies run as INSERT ... SELECT inside the database, one statement per
series and aircraft, so telemetry never round-trips through Python.

Trim windows are given in elapsed seconds. How seconds map to timestamps
depends on the clock:

- Shared clock (default): every series of an aircraft is cut and shifted
  against the aircraft's time-zero (earliest position/attitude/engine
  sample), keeping the series aligned with each other and with markers.
- Per-series clock: each series is cut and shifted against its own
  earliest sample. Series whose first samples differ drift apart.

In both modes the kept rows are shifted by the window start, so the new
series begins where the original one began.
"""

import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy import Integer, and_, insert, literal, select
from sqlalchemy.orm import Session

from flight_analysis.config import config
from flight_analysis.errors import (
    RangeTooSmallError,
    TitleExistsError,
    ValidationError,
    transaction_step,
)
from flight_analysis.models import Aircraft, Flight, Marker, TELEMETRY_SERIES
from flight_analysis.queries import (
    aircraft_for_flight,
    aircraft_time_zero,
    get_flight,
    series_time_zero,
)

logger = logging.getLogger(__name__)

MIN_TRIM_SECONDS = 1.0

FLIGHT_EXCLUDED = ('id', 'creation_time', 'title')
AIRCRAFT_EXCLUDED = ('id', 'flight_id')


def validate_new_title(new_title: Optional[str]) -> str:
    title = (new_title or '').strip()
    if not title:
        raise ValidationError('New title is required')
    return title


def validate_trim_range(start_seconds: float, end_seconds: float) -> None:
    """
    Raises:
        ValidationError: non-finite bounds, or end is not after start.
        RangeTooSmallError: the window is shorter than one second.
    """
    if not (math.isfinite(start_seconds) and math.isfinite(end_seconds)):
        raise ValidationError('Start and end times must be finite numbers')
    if start_seconds < 0:
        raise ValidationError('Start time must not be negative')
    if end_seconds <= start_seconds:
        raise ValidationError('End time must be greater than start time')
    if end_seconds - start_seconds < MIN_TRIM_SECONDS:
        raise RangeTooSmallError('Trim range too small (minimum 1 second)')


def flight_title_exists(session: Session, title: str) -> bool:
    """Exact, case-sensitive title match against all flights."""
    return session.scalar(
        select(Flight.id).where(Flight.title == title).limit(1)
    ) is not None


def _check_derivation(session: Session, flight_id: int, new_title: str) -> None:
    get_flight(session, flight_id)
    if flight_title_exists(session, new_title):
        raise TitleExistsError(new_title)


# -------------------------------------------------------------------------
# Row copies
# -------------------------------------------------------------------------

def copy_flight_record(session: Session, flight_id: int, new_title: str) -> int:
    """Copy the flight header under a new title; returns the new id."""
    source = Flight.__table__
    columns = [c.name for c in source.columns if c.name not in FLIGHT_EXCLUDED]
    stmt = insert(source).from_select(
        columns + ['title'],
        select(*(source.c[c] for c in columns), literal(new_title).label('title'))
        .where(source.c.id == flight_id),
    )
    return session.execute(stmt).lastrowid


def copy_aircraft_record(session: Session, aircraft_id: int, new_flight_id: int) -> int:
    source = Aircraft.__table__
    columns = [c.name for c in source.columns if c.name not in AIRCRAFT_EXCLUDED]
    stmt = insert(source).from_select(
        columns + ['flight_id'],
        select(
            *(source.c[c] for c in columns),
            literal(new_flight_id, Integer).label('flight_id'),
        ).where(source.c.id == aircraft_id),
    )
    return session.execute(stmt).lastrowid


def copy_series(
    session: Session,
    model: type,
    aircraft_id: int,
    new_aircraft_id: int,
    window: Optional[Tuple[int, int]] = None,
    shift_ms: int = 0,
) -> int:
    """
    Copy one telemetry series to another aircraft.

    Args:
        window: Inclusive (first, last) timestamp range to keep; None keeps all
        shift_ms: Subtracted from every copied timestamp

    Returns count of rows copied.
    """
    source = model.__table__
    columns = [c.name for c in source.columns if c.name not in ('aircraft_id', 'timestamp')]

    condition = source.c.aircraft_id == aircraft_id
    if window is not None:
        condition = and_(condition, source.c.timestamp.between(*window))

    stmt = insert(source).from_select(
        ['aircraft_id', 'timestamp'] + columns,
        select(
            literal(new_aircraft_id, Integer).label('aircraft_id'),
            (source.c.timestamp - literal(shift_ms, Integer)).label('timestamp'),
            *(source.c[c] for c in columns),
        ).where(condition),
    )
    return session.execute(stmt).rowcount


def copy_markers(
    session: Session,
    flight_id: int,
    new_flight_id: int,
    window: Optional[Tuple[float, float]] = None,
) -> int:
    """Copy markers with their type; a window keeps and shifts markers inside it."""
    query = select(Marker).where(Marker.flight_id == flight_id).order_by(Marker.time_seconds)
    offset = 0.0
    if window is not None:
        start, end = window
        query = query.where(Marker.time_seconds.between(start, end))
        offset = start

    copies = [
        Marker(
            flight_id=new_flight_id,
            time_seconds=m.time_seconds - offset,
            label=m.label,
            type=m.type,
        )
        for m in session.scalars(query).all()
    ]
    session.add_all(copies)
    session.flush()
    return len(copies)


# -------------------------------------------------------------------------
# Operations
# -------------------------------------------------------------------------

def duplicate_flight(session: Session, flight_id: int, new_title: str) -> int:
    """
    Copy a flight with every aircraft, telemetry row and marker.

    Runs inside the caller's transaction.

    Raises:
        ValidationError: empty title.
        NotFoundError: unknown flight.
        TitleExistsError: new title already in use.
    """
    new_title = validate_new_title(new_title)
    _check_derivation(session, flight_id, new_title)

    with transaction_step(f'copy flight record {flight_id}'):
        new_flight_id = copy_flight_record(session, flight_id, new_title)

    for aircraft in aircraft_for_flight(session, flight_id):
        with transaction_step(f'copy aircraft {aircraft.id}'):
            new_aircraft_id = copy_aircraft_record(session, aircraft.id, new_flight_id)

        for model in TELEMETRY_SERIES:
            with transaction_step(f'copy {model.__tablename__} data for aircraft {aircraft.id}'):
                copy_series(session, model, aircraft.id, new_aircraft_id)

    with transaction_step('copy markers'):
        marker_count = copy_markers(session, flight_id, new_flight_id)

    logger.info(
        f'Duplicated flight {flight_id} as {new_flight_id} "{new_title}" '
        f'({marker_count} markers)'
    )
    return new_flight_id


def _series_windows(
    session: Session,
    aircraft_id: int,
    start_ms: int,
    end_ms: int,
    shared_clock: bool,
) -> List[Tuple[type, Tuple[int, int]]]:
    """Absolute timestamp window per series for one aircraft."""
    shared_zero = aircraft_time_zero(session, aircraft_id) if shared_clock else None

    windows = []
    for model in TELEMETRY_SERIES:
        zero = shared_zero if shared_clock else series_time_zero(session, model, aircraft_id)
        if zero is None:
            continue
        windows.append((model, (zero + start_ms, zero + end_ms)))
    return windows


def trim_flight(
    session: Session,
    flight_id: int,
    new_title: str,
    start_seconds: float,
    end_seconds: float,
    shared_clock: Optional[bool] = None,
) -> int:
    """
    Copy the part of a flight between two elapsed times into a new flight.

    Args:
        start_seconds: Window start, seconds from time-zero
        end_seconds: Window end (inclusive)
        shared_clock: Re-base against the aircraft clock (True) or each
            series' own minimum (False); defaults to configuration

    Raises:
        ValidationError / RangeTooSmallError: bad window or empty title.
        NotFoundError: unknown flight.
        TitleExistsError: new title already in use.
    """
    validate_trim_range(start_seconds, end_seconds)
    new_title = validate_new_title(new_title)
    _check_derivation(session, flight_id, new_title)

    if shared_clock is None:
        shared_clock = config.analysis.shared_trim_clock

    start_ms = int(start_seconds * 1000)
    end_ms = int(end_seconds * 1000)

    with transaction_step(f'copy flight record {flight_id}'):
        new_flight_id = copy_flight_record(session, flight_id, new_title)

    for aircraft in aircraft_for_flight(session, flight_id):
        with transaction_step(f'copy aircraft {aircraft.id}'):
            new_aircraft_id = copy_aircraft_record(session, aircraft.id, new_flight_id)

        for model, window in _series_windows(session, aircraft.id, start_ms, end_ms, shared_clock):
            name = model.__tablename__
            with transaction_step(f'copy trimmed {name} data for aircraft {aircraft.id}'):
                copied = copy_series(
                    session, model, aircraft.id, new_aircraft_id,
                    window=window,
                    shift_ms=start_ms,
                )
            logger.debug(f'Trimmed {name} for aircraft {aircraft.id}: {copied} rows kept')

    with transaction_step('copy trimmed markers'):
        marker_count = copy_markers(
            session, flight_id, new_flight_id, window=(start_seconds, end_seconds)
        )

    logger.info(
        f'Trimmed flight {flight_id} [{start_seconds:.1f}s, {end_seconds:.1f}s] '
        f'into {new_flight_id} "{new_title}" ({marker_count} markers)'
    )
    return new_flight_id
