"""pytest configuration for flight_analysis tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, insert, select, text

from flight_analysis.app import create_app
from flight_analysis.models import (
    Aircraft,
    Attitude,
    Engine,
    Flight,
    Marker,
    Position,
    TELEMETRY_SERIES,
)
from flight_analysis.store import FlightStore

DATA_DIR = Path(__file__).parent / "data"

# Canonical timestamps used by seeded flights (ms)
SEED_BASE_MS = 1_000_000

# Logbook layout from before position.indicated_airspeed existed
LOGBOOK_DDL = (
    """
    CREATE TABLE flight (
        id integer primary key,
        creation_time datetime not null default (strftime('%Y-%m-%dT%H:%M:%fZ', 'now')),
        user_aircraft_seq_nr integer not null,
        title text,
        description text,
        flight_number text,
        ground_altitude real,
        wind_speed real,
        start_local_sim_time datetime,
        start_zulu_sim_time datetime,
        end_local_sim_time datetime,
        end_zulu_sim_time datetime
    )
    """,
    """
    CREATE TABLE aircraft (
        id integer primary key,
        flight_id integer not null,
        seq_nr integer not null,
        type text not null,
        time_offset integer,
        tail_number text,
        airline text,
        initial_airspeed integer,
        altitude_above_ground real,
        start_on_ground integer
    )
    """,
    """
    CREATE TABLE position (
        aircraft_id integer not null,
        timestamp integer not null,
        latitude real,
        longitude real,
        altitude real,
        indicated_altitude real,
        calibrated_indicated_altitude real,
        pressure_altitude real,
        primary key(aircraft_id, timestamp)
    )
    """,
    """
    CREATE TABLE attitude (
        aircraft_id integer not null,
        timestamp integer not null,
        pitch real,
        bank real,
        true_heading real,
        velocity_x real,
        velocity_y real,
        velocity_z real,
        on_ground int,
        primary key(aircraft_id, timestamp)
    )
    """,
    """
    CREATE TABLE engine (
        aircraft_id integer not null,
        timestamp integer not null,
        throttle_lever_position1 real,
        throttle_lever_position2 real,
        primary key(aircraft_id, timestamp)
    )
    """,
)


@pytest.fixture
def store(tmp_path):
    """File-backed canonical store with the schema in place."""
    store = FlightStore(f"sqlite:///{tmp_path / 'canonical.db'}")
    store.ensure_schema()
    yield store
    store.dispose()


@pytest.fixture
def sample_csv():
    """FS-FlightControl export with two banner rows and one malformed row."""
    return (DATA_DIR / "fs_flightcontrol.csv").read_text(encoding="utf-8")


@pytest.fixture
def make_logbook(tmp_path):
    """Factory writing a foreign logbook database; returns its path.

    Flight ``i`` (1-based) starts on day ``i`` so later flights are newer.
    Flight 1 has no title or flight number.
    """

    def _make(
        name: str = "logbook.sdlog",
        flights: int = 2,
        aircraft_per_flight: int = 1,
        samples: int = 11,
        omit_tables: tuple = (),
    ) -> Path:
        path = tmp_path / name
        engine = create_engine(f"sqlite:///{path}")
        aircraft_id = 0
        with engine.begin() as conn:
            for ddl in LOGBOOK_DDL:
                table_name = ddl.split("CREATE TABLE")[1].split("(")[0].strip()
                if table_name not in omit_tables:
                    conn.execute(text(ddl))

            for i in range(1, flights + 1):
                conn.execute(
                    text(
                        "INSERT INTO flight (id, user_aircraft_seq_nr, title, flight_number,"
                        " start_zulu_sim_time, end_zulu_sim_time, start_local_sim_time,"
                        " end_local_sim_time, wind_speed)"
                        " VALUES (:id, 1, :title, :number, :start, :end, :start, :end, 12.5)"
                    ),
                    {
                        "id": 100 + i,
                        "title": None if i == 1 else f"Logbook flight {i}",
                        "number": None if i == 1 else f"FL{i}",
                        "start": f"2024-01-0{i}T10:00:00.000Z",
                        "end": f"2024-01-0{i}T11:00:00.000Z",
                    },
                )
                if "aircraft" in omit_tables:
                    continue
                for seq in range(1, aircraft_per_flight + 1):
                    aircraft_id += 1
                    conn.execute(
                        text(
                            "INSERT INTO aircraft (id, flight_id, seq_nr, type, tail_number)"
                            " VALUES (:id, :flight_id, :seq, 'Cessna 172', :tail)"
                        ),
                        {
                            "id": 500 + aircraft_id,
                            "flight_id": 100 + i,
                            "seq": seq,
                            "tail": f"G-AB{aircraft_id:02d}",
                        },
                    )
                    for k in range(samples):
                        params = {"aid": 500 + aircraft_id, "ts": 5_000 + k * 1000}
                        if "position" not in omit_tables:
                            conn.execute(
                                text(
                                    "INSERT INTO position (aircraft_id, timestamp, latitude,"
                                    " longitude, altitude, indicated_altitude, pressure_altitude)"
                                    " VALUES (:aid, :ts, :lat, -1.8, :alt, :ia, :pa)"
                                ),
                                {**params, "lat": 54.0 + k * 0.01, "alt": 100.0 + k,
                                 "ia": 328.0 + k, "pa": 330.0 + k},
                            )
                        if "attitude" not in omit_tables:
                            conn.execute(
                                text(
                                    "INSERT INTO attitude (aircraft_id, timestamp, velocity_x,"
                                    " velocity_y, velocity_z, on_ground)"
                                    " VALUES (:aid, :ts, 30.0, 40.0, 0.0, 0)"
                                ),
                                params,
                            )
                        if "engine" not in omit_tables:
                            conn.execute(
                                text(
                                    "INSERT INTO engine (aircraft_id, timestamp,"
                                    " throttle_lever_position1) VALUES (:aid, :ts, 0.5)"
                                ),
                                params,
                            )
        engine.dispose()
        return path

    return _make


@pytest.fixture
def seed_flight(store):
    """Factory inserting a canonical flight; returns its id.

    The aircraft has position and engine samples every second for
    ``seconds`` seconds from SEED_BASE_MS, and attitude samples offset by
    ``attitude_offset_ms``. Markers are (time, label, type) tuples.
    """

    def _seed(
        title: str = "Seed Flight",
        seconds: int = 100,
        attitude_offset_ms: int = 500,
        markers: tuple = (),
        aircraft_type: str = "ASK 21",
        tail_number: str = "G-CKAA",
        latitudes=None,
    ) -> int:
        with store.session() as session:
            flight = Flight(
                title=title,
                flight_number="SEED1",
                user_aircraft_seq_nr=1,
                wind_speed=8.0,
                start_zulu_sim_time="2024-05-01T09:00:00.000Z",
                end_zulu_sim_time="2024-05-01T09:01:40.000Z",
            )
            session.add(flight)
            session.flush()

            aircraft = Aircraft(
                flight_id=flight.id,
                seq_nr=1,
                type=aircraft_type,
                tail_number=tail_number,
            )
            session.add(aircraft)
            session.flush()

            session.execute(
                insert(Position),
                [
                    {
                        "aircraft_id": aircraft.id,
                        "timestamp": SEED_BASE_MS + k * 1000,
                        "latitude": latitudes[k] if latitudes else 54.0,
                        "longitude": -1.8342,
                        "altitude": 300.0 + k,
                        "indicated_altitude": 1000.0 + k,
                        "pressure_altitude": 1010.0 + k,
                        "indicated_airspeed": 50.0 + (k % 5),
                    }
                    for k in range(seconds + 1)
                ],
            )
            session.execute(
                insert(Attitude),
                [
                    {
                        "aircraft_id": aircraft.id,
                        "timestamp": SEED_BASE_MS + attitude_offset_ms + k * 1000,
                        "velocity_x": 3.0,
                        "velocity_y": 4.0,
                        "velocity_z": 0.0,
                        "on_ground": 0,
                    }
                    for k in range(seconds)
                ],
            )
            session.execute(
                insert(Engine),
                [
                    {
                        "aircraft_id": aircraft.id,
                        "timestamp": SEED_BASE_MS + k * 1000,
                        "throttle_lever_position1": 0.75,
                    }
                    for k in range(seconds + 1)
                ],
            )
            for time_seconds, label, marker_type in markers:
                session.add(
                    Marker(
                        flight_id=flight.id,
                        time_seconds=time_seconds,
                        label=label,
                        type=marker_type,
                    )
                )
            return flight.id

    return _seed


@pytest.fixture
def snapshot(store):
    """Callable returning every row owned by a flight, for before/after checks."""

    def _snapshot(flight_id: int) -> dict:
        with store.Session() as session:
            flight = session.execute(
                select(Flight.__table__).where(Flight.id == flight_id)
            ).mappings().one()
            aircraft_ids = session.scalars(
                select(Aircraft.id).where(Aircraft.flight_id == flight_id)
            ).all()
            rows = {"flight": dict(flight)}
            for model in TELEMETRY_SERIES:
                table = model.__table__
                rows[table.name] = [
                    dict(r)
                    for r in session.execute(
                        select(table)
                        .where(table.c.aircraft_id.in_(aircraft_ids))
                        .order_by(table.c.aircraft_id, table.c.timestamp)
                    ).mappings()
                ]
            rows["markers"] = [
                (m.time_seconds, m.label, m.type)
                for m in session.scalars(
                    select(Marker).where(Marker.flight_id == flight_id).order_by(Marker.id)
                )
            ]
            rows["aircraft_count"] = len(aircraft_ids)
            return rows

    return _snapshot


@pytest.fixture
def app(store, tmp_path):
    """Flask app serving the test store."""
    app = create_app(store=store, upload_dir=str(tmp_path / "uploads"))
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
