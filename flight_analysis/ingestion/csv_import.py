"""
CSV import - writes a parsed CSV flight log into the canonical store.

CSV logs describe a single aircraft with far fewer channels than a
logbook database, so the canonical series are derived:

- position: altitude converted to meters, feet kept in the indicated and
  pressure altitude fields, indicated airspeed stored directly
- attitude: velocity components synthesized from ground speed and true
  heading, vertical speed converted from feet per minute
- engine: flaps handle position stands in for throttle lever 1

CSV times are relative, so timestamps are laid out from a fixed base.
"""

import logging
import math
from typing import Dict, List, Optional

from sqlalchemy import insert
from sqlalchemy.orm import Session

from flight_analysis.errors import transaction_step
from flight_analysis.ingestion.csv_parser import CSVFlightRecord, CSVMetadata
from flight_analysis.models import Aircraft, Attitude, Engine, Flight, Position

logger = logging.getLogger(__name__)

# Epoch milliseconds the first CSV record is placed at
CSV_BASE_TIMESTAMP_MS = 1_690_000_000_000

FEET_TO_METERS = 0.3048
KNOTS_TO_MPS = 0.514444
FPM_TO_MPS = 0.00508

CSV_FLIGHT_NUMBER = 'CSV Import'
CSV_TAIL_NUMBER = 'CSV-IMPORT'


def record_timestamp(record: CSVFlightRecord) -> int:
    return CSV_BASE_TIMESTAMP_MS + int(record.timestamp_seconds * 1000)


def position_row(record: CSVFlightRecord, aircraft_id: int) -> dict:
    return {
        'aircraft_id': aircraft_id,
        'timestamp': record_timestamp(record),
        'latitude': record.latitude,
        'longitude': record.longitude,
        'altitude': record.altitude * FEET_TO_METERS,
        'indicated_altitude': record.altitude,
        'pressure_altitude': record.altitude,
        'indicated_airspeed': record.airspeed_indicated,
    }


def attitude_row(record: CSVFlightRecord, aircraft_id: int) -> dict:
    heading = math.radians(record.heading_true)
    ground_speed = record.ground_speed * KNOTS_TO_MPS
    return {
        'aircraft_id': aircraft_id,
        'timestamp': record_timestamp(record),
        'pitch': record.pitch_angle,
        'bank': record.bank_angle,
        'true_heading': record.heading_true,
        'velocity_x': ground_speed * math.sin(heading),
        'velocity_y': ground_speed * math.cos(heading),
        'velocity_z': record.vertical_speed * FPM_TO_MPS,
        'on_ground': 1 if record.on_ground else 0,
    }


def engine_row(record: CSVFlightRecord, aircraft_id: int) -> dict:
    return {
        'aircraft_id': aircraft_id,
        'timestamp': record_timestamp(record),
        'throttle_lever_position1': record.flaps_position / 100.0,
    }


def unique_by_timestamp(records: List[CSVFlightRecord]) -> List[CSVFlightRecord]:
    """
    Keep the first record for each millisecond timestamp.

    Rows without a parseable time all land on the base timestamp and
    would violate the (aircraft_id, timestamp) key.
    """
    seen: Dict[int, CSVFlightRecord] = {}
    for record in records:
        seen.setdefault(record_timestamp(record), record)
    if len(seen) < len(records):
        logger.warning(
            f'Dropped {len(records) - len(seen)} CSV records with repeated timestamps'
        )
    return list(seen.values())


def write_csv_flight(
    session: Session,
    metadata: CSVMetadata,
    records: List[CSVFlightRecord],
) -> Flight:
    """
    Insert one flight, one aircraft and its derived series.

    Runs inside the caller's transaction; nothing is committed here.
    """
    first_time: Optional[str] = records[0].time or None
    last_time: Optional[str] = records[-1].time or None

    with transaction_step('create flight from CSV'):
        flight = Flight(
            title=metadata.flight_title,
            flight_number=CSV_FLIGHT_NUMBER,
            description=(
                f'Imported from CSV ({metadata.source}) - {len(records)} data points'
            ),
            user_aircraft_seq_nr=1,
        )
        # Leave the sim time defaults in place when the CSV has no times
        if first_time:
            flight.start_zulu_sim_time = first_time
            flight.start_local_sim_time = first_time
        if last_time:
            flight.end_zulu_sim_time = last_time
            flight.end_local_sim_time = last_time
        session.add(flight)
        session.flush()

    with transaction_step('create aircraft from CSV'):
        aircraft = Aircraft(
            flight_id=flight.id,
            seq_nr=1,
            type=metadata.aircraft_type,
            tail_number=CSV_TAIL_NUMBER,
        )
        session.add(aircraft)
        session.flush()

    samples = unique_by_timestamp(records)

    with transaction_step('import position data from CSV'):
        session.execute(insert(Position), [position_row(r, aircraft.id) for r in samples])

    with transaction_step('import attitude data from CSV'):
        session.execute(insert(Attitude), [attitude_row(r, aircraft.id) for r in samples])

    with transaction_step('import engine data from CSV'):
        session.execute(insert(Engine), [engine_row(r, aircraft.id) for r in samples])

    # Reload server-side defaults (sim times) for the summary
    session.refresh(flight)

    logger.info(
        f'Imported CSV flight {flight.id} "{metadata.flight_title}" '
        f'with {len(samples)} samples'
    )
    return flight
