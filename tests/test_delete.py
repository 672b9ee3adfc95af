"""Tests for flight deletion."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from flight_analysis.errors import NotFoundError, ValidationError
from flight_analysis.models import Aircraft, Marker, TELEMETRY_SERIES


def _owned_rows(store, flight_id):
    """Rows still referencing a flight, per table."""
    with store.Session() as session:
        aircraft_ids = session.scalars(
            select(Aircraft.id).where(Aircraft.flight_id == flight_id)
        ).all()
        counts = {
            model.__tablename__: session.scalar(
                select(func.count()).select_from(model).where(
                    model.aircraft_id.in_(aircraft_ids)
                )
            )
            for model in TELEMETRY_SERIES
        }
        counts["markers"] = session.scalar(
            select(func.count()).select_from(Marker).where(Marker.flight_id == flight_id)
        )
        counts["aircraft"] = len(aircraft_ids)
        return counts


class TestDeleteFlight:

    def test_removes_everything_owned(self, store, seed_flight):
        flight_id = seed_flight(markers=((3.0, "Launch", "regular"),))

        removed = store.delete_flight(flight_id)

        assert removed["flight"] == 1
        assert removed["aircraft"] == 1
        assert removed["position"] == 101
        assert removed["attitude"] == 100
        assert removed["markers"] == 1
        assert store.list_flights() == []
        with pytest.raises(NotFoundError):
            store.get_flight(flight_id)

    def test_other_flights_untouched(self, store, seed_flight, snapshot):
        keep_id = seed_flight(title="Keep", markers=((1.0, "Keep me", "regular"),))
        drop_id = seed_flight(title="Drop")
        before = snapshot(keep_id)

        store.delete_flight(drop_id)

        assert snapshot(keep_id) == before
        assert all(count == 0 for count in _owned_rows(store, drop_id).values())

    def test_derived_copy_survives_source_deletion(self, store, seed_flight):
        flight_id = seed_flight()
        copy_id = store.duplicate_flight(flight_id, "Backup")

        store.delete_flight(flight_id)

        assert [f.id for f in store.list_flights()] == [copy_id]
        assert _owned_rows(store, copy_id)["position"] == 101

    def test_unknown_flight(self, store, seed_flight):
        seed_flight(seconds=5)
        with pytest.raises(NotFoundError):
            store.delete_flight(12345)
        assert store.database_stats()["flight_count"] == 1

    @pytest.mark.parametrize("flight_id", [0, -3])
    def test_invalid_id(self, store, flight_id):
        with pytest.raises(ValidationError, match="Invalid flight ID"):
            store.delete_flight(flight_id)
