"""Tests for canonical schema creation and additive migration."""

from __future__ import annotations

import pytest
from sqlalchemy import create_engine, inspect, text

from flight_analysis.errors import SchemaError
from flight_analysis.models import ensure_schema
from flight_analysis.store import FlightStore


def _columns(engine, table_name):
    return [c["name"] for c in inspect(engine).get_columns(table_name)]


class TestBaselineSchema:
    """Tests against a fresh database."""

    def test_all_tables_created(self, store):
        """Every canonical table exists after ensure_schema."""
        tables = set(inspect(store.engine).get_table_names())
        assert {
            "flight",
            "aircraft",
            "position",
            "attitude",
            "engine",
            "handle",
            "light",
            "primary_flight_control",
            "secondary_flight_control",
            "waypoint",
            "markers",
        } <= tables

    def test_indexes_created(self, store):
        inspector = inspect(store.engine)
        aircraft_indexes = {ix["name"]: ix for ix in inspector.get_indexes("aircraft")}
        assert aircraft_indexes["aircraft_idx1"]["unique"]
        assert "aircraft_idx2" in aircraft_indexes

        marker_indexes = {ix["name"] for ix in inspector.get_indexes("markers")}
        assert {"markers_flight_id_idx", "markers_time_idx", "markers_type_idx"} <= marker_indexes

    def test_idempotent(self, store):
        """Running ensure_schema again changes nothing."""
        before = {
            name: _columns(store.engine, name)
            for name in inspect(store.engine).get_table_names()
        }

        store.ensure_schema()
        store.ensure_schema()

        after = {
            name: _columns(store.engine, name)
            for name in inspect(store.engine).get_table_names()
        }
        assert before == after
        assert after["position"].count("indicated_airspeed") == 1
        assert after["markers"].count("type") == 1


class TestLegacyMigration:
    """Tests against databases created before markers and airspeed existed."""

    @pytest.fixture
    def legacy_url(self, tmp_path):
        path = tmp_path / "legacy.db"
        engine = create_engine(f"sqlite:///{path}")
        with engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE flight (id integer primary key, creation_time datetime,"
                " user_aircraft_seq_nr integer not null, title text, flight_number text,"
                " start_zulu_sim_time datetime, end_zulu_sim_time datetime)"
            ))
            conn.execute(text(
                "CREATE TABLE aircraft (id integer primary key, flight_id integer not null,"
                " seq_nr integer not null, type text not null, tail_number text)"
            ))
            conn.execute(text(
                "CREATE TABLE position (aircraft_id integer not null,"
                " timestamp integer not null, latitude real, longitude real, altitude real,"
                " primary key(aircraft_id, timestamp))"
            ))
            conn.execute(text(
                "INSERT INTO flight (id, user_aircraft_seq_nr, title) VALUES (7, 1, 'Old')"
            ))
            conn.execute(text(
                "INSERT INTO aircraft (id, flight_id, seq_nr, type) VALUES (3, 7, 1, 'DG-1000')"
            ))
            conn.execute(text(
                "INSERT INTO position (aircraft_id, timestamp, altitude) VALUES (3, 0, 250.0)"
            ))
        engine.dispose()
        return f"sqlite:///{path}"

    def test_adds_missing_tables_and_columns(self, legacy_url):
        store = FlightStore(legacy_url)
        try:
            store.ensure_schema()

            tables = set(inspect(store.engine).get_table_names())
            assert "markers" in tables
            assert "attitude" in tables
            assert "indicated_airspeed" in _columns(store.engine, "position")
            assert "type" in _columns(store.engine, "markers")
        finally:
            store.dispose()

    def test_existing_rows_survive(self, legacy_url):
        store = FlightStore(legacy_url)
        try:
            store.ensure_schema()

            with store.engine.connect() as conn:
                titles = conn.execute(text("SELECT id, title FROM flight")).all()
                row = conn.execute(text(
                    "SELECT altitude, indicated_airspeed FROM position WHERE aircraft_id = 3"
                )).one()
            assert [tuple(t) for t in titles] == [(7, "Old")]
            assert row.altitude == 250.0
            assert row.indicated_airspeed is None
        finally:
            store.dispose()

    def test_migrated_marker_type_defaults_to_regular(self, tmp_path):
        """A markers table without a type column gets 'regular' for old rows."""
        path = tmp_path / "old_markers.db"
        engine = create_engine(f"sqlite:///{path}")
        with engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE flight (id integer primary key, creation_time datetime,"
                " user_aircraft_seq_nr integer not null, title text)"
            ))
            conn.execute(text(
                "CREATE TABLE markers (id integer primary key, flight_id integer not null,"
                " time_seconds real not null, label text not null, created_at datetime)"
            ))
            conn.execute(text(
                "INSERT INTO flight (id, user_aircraft_seq_nr, title) VALUES (1, 1, 'A')"
            ))
            conn.execute(text(
                "INSERT INTO markers (flight_id, time_seconds, label) VALUES (1, 4.0, 'Launch')"
            ))
        engine.dispose()

        engine = create_engine(f"sqlite:///{path}")
        ensure_schema(engine)
        engine.dispose()

        store = FlightStore(f"sqlite:///{path}")
        try:
            markers = store.list_markers(1)
            assert [(m.label, m.type) for m in markers] == [("Launch", "regular")]
        finally:
            store.dispose()


def test_unusable_database_raises_schema_error(tmp_path):
    """A file that is not SQLite cannot be migrated."""
    path = tmp_path / "garbage.db"
    path.write_bytes(b"this is not a sqlite database" * 100)

    engine = create_engine(f"sqlite:///{path}")
    with pytest.raises(SchemaError):
        ensure_schema(engine)
    engine.dispose()
