"""
Read accessors over the canonical store.

These back the presentation layer and the statistics/export module:
flight listings, per-aircraft position and engine series, and the
aircraft clock every elapsed-seconds value is measured against.

Reads run in short sessions without an explicit transaction; imports
only ever add rows, so a concurrent import cannot change data that is
already committed.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple, Type

import numpy as np
from sqlalchemy import select, func
from sqlalchemy.orm import Session

from flight_analysis.errors import NotFoundError
from flight_analysis.models import (
    Aircraft,
    Attitude,
    Engine,
    Flight,
    Position,
    CLOCK_SERIES,
    display_title,
    display_flight_number,
)
from flight_analysis.models.telemetry import TelemetryMixin

logger = logging.getLogger(__name__)


@dataclass
class FlightSummary:
    """Flight listing entry with read-time title defaults applied."""
    id: int
    title: str
    flight_number: str
    start_time: str
    end_time: str
    source_id: Optional[int] = None  # Id in the imported source database

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PositionPoint:
    """
    One position sample as the charts consume it.

    Missing values read as 0.0; statistics treat zero altitude and
    non-positive airspeed as absent.
    """
    timestamp: int
    timestamp_seconds: float = 0.0
    altitude: float = 0.0
    latitude: float = 0.0
    longitude: float = 0.0
    indicated_altitude: float = 0.0
    pressure_altitude: float = 0.0
    airspeed: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EnginePoint:
    timestamp: int
    timestamp_seconds: float = 0.0
    throttle1: float = 0.0
    throttle2: float = 0.0
    throttle3: float = 0.0
    throttle4: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class FlightData:
    """Flight header plus per-aircraft series keyed by aircraft label."""
    flight: FlightSummary
    positions: Dict[str, List[PositionPoint]] = field(default_factory=dict)
    engines: Dict[str, List[EnginePoint]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'flight': self.flight.to_dict(),
            'position_data': {
                label: [p.to_dict() for p in points]
                for label, points in self.positions.items()
            },
            'engine_data': {
                label: [p.to_dict() for p in points]
                for label, points in self.engines.items()
            },
        }


def summarize_flight(flight: Flight, source_id: Optional[int] = None) -> FlightSummary:
    return FlightSummary(
        id=flight.id,
        title=display_title(flight.title),
        flight_number=display_flight_number(flight.flight_number),
        start_time=flight.start_zulu_sim_time,
        end_time=flight.end_zulu_sim_time,
        source_id=source_id,
    )


def list_flights(session: Session) -> List[FlightSummary]:
    """All flights, most recent start first."""
    flights = session.scalars(
        select(Flight).order_by(Flight.start_zulu_sim_time.desc(), Flight.id.desc())
    ).all()
    return [summarize_flight(f) for f in flights]


def get_flight(session: Session, flight_id: int) -> Flight:
    flight = session.get(Flight, flight_id)
    if flight is None:
        raise NotFoundError(f'Flight {flight_id} not found')
    return flight


def aircraft_for_flight(session: Session, flight_id: int) -> List[Aircraft]:
    return list(session.scalars(
        select(Aircraft)
        .where(Aircraft.flight_id == flight_id)
        .order_by(Aircraft.seq_nr)
    ).all())


def labelled_aircraft(aircraft: List[Aircraft]) -> List[Tuple[str, Aircraft]]:
    """
    Pair each aircraft with a unique display label.

    Two aircraft of the same type and tail number would collide on
    'type (tail)', so later ones get their sequence number appended.
    """
    seen = set()
    labelled = []
    for ac in aircraft:
        label = ac.label
        if label in seen:
            label = f'{label} #{ac.seq_nr}'
        seen.add(label)
        labelled.append((label, ac))
    return labelled


def series_time_zero(
    session: Session,
    model: Type[TelemetryMixin],
    aircraft_id: int,
) -> Optional[int]:
    """Earliest timestamp of one series, or None when it has no rows."""
    return session.scalar(
        select(func.min(model.timestamp)).where(model.aircraft_id == aircraft_id)
    )


def aircraft_time_zero(session: Session, aircraft_id: int) -> Optional[int]:
    """
    The aircraft clock: earliest sample across position, attitude, engine.

    Elapsed seconds in charts, markers and trim windows are all measured
    from this value.
    """
    zeros = [
        ts for ts in (
            series_time_zero(session, model, aircraft_id) for model in CLOCK_SERIES
        )
        if ts is not None
    ]
    return min(zeros) if zeros else None


def _value(v: Optional[float]) -> float:
    return float(v) if v is not None else 0.0


def match_airspeed(
    position_ts: np.ndarray,
    indicated: np.ndarray,
    attitude_ts: np.ndarray,
    attitude_speed: np.ndarray,
) -> np.ndarray:
    """
    Airspeed per position sample.

    Uses the stored indicated airspeed where positive, otherwise the
    velocity magnitude of the attitude sample nearest in time (the earlier
    one on a tie). Both timestamp arrays must be sorted.
    """
    airspeed = indicated.astype(float).copy()
    missing = airspeed <= 0
    if not missing.any() or attitude_ts.size == 0:
        return airspeed

    idx = np.searchsorted(attitude_ts, position_ts)
    right = np.clip(idx, 0, attitude_ts.size - 1)
    left = np.clip(idx - 1, 0, attitude_ts.size - 1)
    use_right = np.abs(attitude_ts[right] - position_ts) < np.abs(position_ts - attitude_ts[left])
    nearest = np.where(use_right, right, left)

    airspeed[missing] = attitude_speed[nearest][missing]
    return airspeed


def _position_series(session: Session, aircraft_id: int, zero: int) -> List[PositionPoint]:
    rows = session.execute(
        select(
            Position.timestamp,
            Position.altitude,
            Position.latitude,
            Position.longitude,
            Position.indicated_altitude,
            Position.pressure_altitude,
            Position.indicated_airspeed,
        )
        .where(Position.aircraft_id == aircraft_id)
        .order_by(Position.timestamp)
    ).all()
    if not rows:
        return []

    att_rows = session.execute(
        select(Attitude.timestamp, Attitude.velocity_x, Attitude.velocity_y, Attitude.velocity_z)
        .where(Attitude.aircraft_id == aircraft_id)
        .order_by(Attitude.timestamp)
    ).all()

    position_ts = np.array([r.timestamp for r in rows], dtype=np.int64)
    indicated = np.array([_value(r.indicated_airspeed) for r in rows])
    attitude_ts = np.array([r.timestamp for r in att_rows], dtype=np.int64)
    velocity = np.array(
        [[_value(r.velocity_x), _value(r.velocity_y), _value(r.velocity_z)] for r in att_rows]
    ).reshape(-1, 3)
    attitude_speed = np.linalg.norm(velocity, axis=1)

    airspeed = match_airspeed(position_ts, indicated, attitude_ts, attitude_speed)

    return [
        PositionPoint(
            timestamp=r.timestamp,
            timestamp_seconds=(r.timestamp - zero) / 1000.0,
            altitude=_value(r.altitude),
            latitude=_value(r.latitude),
            longitude=_value(r.longitude),
            indicated_altitude=_value(r.indicated_altitude),
            pressure_altitude=_value(r.pressure_altitude),
            airspeed=float(speed),
        )
        for r, speed in zip(rows, airspeed)
    ]


def _engine_series(session: Session, aircraft_id: int, zero: int) -> List[EnginePoint]:
    rows = session.execute(
        select(
            Engine.timestamp,
            Engine.throttle_lever_position1,
            Engine.throttle_lever_position2,
            Engine.throttle_lever_position3,
            Engine.throttle_lever_position4,
        )
        .where(Engine.aircraft_id == aircraft_id)
        .order_by(Engine.timestamp)
    ).all()
    return [
        EnginePoint(
            timestamp=r.timestamp,
            timestamp_seconds=(r.timestamp - zero) / 1000.0,
            throttle1=_value(r.throttle_lever_position1),
            throttle2=_value(r.throttle_lever_position2),
            throttle3=_value(r.throttle_lever_position3),
            throttle4=_value(r.throttle_lever_position4),
        )
        for r in rows
    ]


def get_flight_data(session: Session, flight_id: int) -> FlightData:
    """
    Flight header plus position and engine series for every aircraft.

    Raises:
        NotFoundError: unknown flight id.
    """
    flight = get_flight(session, flight_id)
    data = FlightData(flight=summarize_flight(flight))

    for label, ac in labelled_aircraft(aircraft_for_flight(session, flight_id)):
        zero = aircraft_time_zero(session, ac.id)
        if zero is None:
            continue

        positions = _position_series(session, ac.id, zero)
        if positions:
            data.positions[label] = positions

        engines = _engine_series(session, ac.id, zero)
        if engines:
            data.engines[label] = engines

    logger.debug(
        f'Loaded flight {flight_id}: {len(data.positions)} aircraft with position data'
    )
    return data
