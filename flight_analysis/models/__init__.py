"""
Database models for the canonical flight record store.

Ownership is strictly tree-shaped:
1. Flight owns Aircraft and Markers
2. Aircraft owns every telemetry series row
3. Telemetry rows are keyed by (aircraft_id, timestamp)
"""

from flight_analysis.models.base import (
    Base,
    create_db_engine,
    create_session_factory,
    session_scope,
)
from flight_analysis.models.flight import Flight, display_title, display_flight_number
from flight_analysis.models.aircraft import Aircraft, aircraft_label
from flight_analysis.models.telemetry import (
    Position,
    Attitude,
    Engine,
    Handle,
    Light,
    PrimaryFlightControl,
    SecondaryFlightControl,
    Waypoint,
    CLOCK_SERIES,
    TELEMETRY_SERIES,
)
from flight_analysis.models.marker import Marker, MarkerType, TRIM_MARKER_TYPES
from flight_analysis.models.schema import ensure_schema

__all__ = [
    'Base',
    'create_db_engine',
    'create_session_factory',
    'session_scope',
    'Flight',
    'display_title',
    'display_flight_number',
    'Aircraft',
    'aircraft_label',
    'Position',
    'Attitude',
    'Engine',
    'Handle',
    'Light',
    'PrimaryFlightControl',
    'SecondaryFlightControl',
    'Waypoint',
    'CLOCK_SERIES',
    'TELEMETRY_SERIES',
    'Marker',
    'MarkerType',
    'TRIM_MARKER_TYPES',
    'ensure_schema',
]
