"""
Telemetry series models - per-aircraft time series.

Every series table is keyed by (aircraft_id, timestamp), where timestamp
is an integer millisecond value. Rows are append-only: imports and
derivations bulk-insert them, deletes remove them per aircraft, nothing
updates them in place.

Series fall into two groups:
- Clock series (position, attitude, engine): required in every imported
  logbook; their earliest sample is the aircraft's time-zero.
- Supplementary series (handles, lights, flight controls, waypoints):
  copied along when present.
"""

from typing import Optional, Tuple, Type

from sqlalchemy import String, Float, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from flight_analysis.models.base import Base


class TelemetryMixin:
    """Composite key shared by all series tables."""

    aircraft_id: Mapped[int] = mapped_column(
        Integer, ForeignKey('aircraft.id'), primary_key=True
    )

    # Milliseconds; self-consistent within one aircraft
    timestamp: Mapped[int] = mapped_column(Integer, primary_key=True)

    def __repr__(self) -> str:
        return f'<{type(self).__name__} {self.aircraft_id} @ {self.timestamp}>'


class Position(TelemetryMixin, Base):
    """
    Position samples.

    altitude is in meters; indicated and pressure altitude are in feet as
    the simulator reports them.
    """

    __tablename__ = 'position'

    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    altitude: Mapped[Optional[float]] = mapped_column(Float)
    indicated_altitude: Mapped[Optional[float]] = mapped_column(Float)
    calibrated_indicated_altitude: Mapped[Optional[float]] = mapped_column(Float)
    pressure_altitude: Mapped[Optional[float]] = mapped_column(Float)

    # Added after the first logbook schema; older databases lack it
    indicated_airspeed: Mapped[Optional[float]] = mapped_column(
        Float,
        comment='Indicated airspeed in knots'
    )


class Attitude(TelemetryMixin, Base):
    """Attitude and body velocity samples (velocity in m/s)."""

    __tablename__ = 'attitude'

    pitch: Mapped[Optional[float]] = mapped_column(Float)
    bank: Mapped[Optional[float]] = mapped_column(Float)
    true_heading: Mapped[Optional[float]] = mapped_column(Float)
    velocity_x: Mapped[Optional[float]] = mapped_column(Float)
    velocity_y: Mapped[Optional[float]] = mapped_column(Float)
    velocity_z: Mapped[Optional[float]] = mapped_column(Float)
    on_ground: Mapped[Optional[int]] = mapped_column(Integer)


class Engine(TelemetryMixin, Base):
    """Engine lever and switch samples for up to four engines."""

    __tablename__ = 'engine'

    throttle_lever_position1: Mapped[Optional[float]] = mapped_column(Float)
    throttle_lever_position2: Mapped[Optional[float]] = mapped_column(Float)
    throttle_lever_position3: Mapped[Optional[float]] = mapped_column(Float)
    throttle_lever_position4: Mapped[Optional[float]] = mapped_column(Float)
    propeller_lever_position1: Mapped[Optional[float]] = mapped_column(Float)
    propeller_lever_position2: Mapped[Optional[float]] = mapped_column(Float)
    propeller_lever_position3: Mapped[Optional[float]] = mapped_column(Float)
    propeller_lever_position4: Mapped[Optional[float]] = mapped_column(Float)
    mixture_lever_position1: Mapped[Optional[float]] = mapped_column(Float)
    mixture_lever_position2: Mapped[Optional[float]] = mapped_column(Float)
    mixture_lever_position3: Mapped[Optional[float]] = mapped_column(Float)
    mixture_lever_position4: Mapped[Optional[float]] = mapped_column(Float)
    cowl_flap_position1: Mapped[Optional[float]] = mapped_column(Float)
    cowl_flap_position2: Mapped[Optional[float]] = mapped_column(Float)
    cowl_flap_position3: Mapped[Optional[float]] = mapped_column(Float)
    cowl_flap_position4: Mapped[Optional[float]] = mapped_column(Float)
    electrical_master_battery1: Mapped[Optional[int]] = mapped_column(Integer)
    electrical_master_battery2: Mapped[Optional[int]] = mapped_column(Integer)
    electrical_master_battery3: Mapped[Optional[int]] = mapped_column(Integer)
    electrical_master_battery4: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_starter1: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_starter2: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_starter3: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_starter4: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_combustion1: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_combustion2: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_combustion3: Mapped[Optional[int]] = mapped_column(Integer)
    general_engine_combustion4: Mapped[Optional[int]] = mapped_column(Integer)


class Handle(TelemetryMixin, Base):
    __tablename__ = 'handle'

    brake_left_position: Mapped[Optional[int]] = mapped_column(Integer)
    brake_right_position: Mapped[Optional[int]] = mapped_column(Integer)
    water_rudder_handle_position: Mapped[Optional[int]] = mapped_column(Integer)
    tailhook_position: Mapped[Optional[int]] = mapped_column(Integer)
    canopy_open: Mapped[Optional[int]] = mapped_column(Integer)
    left_wing_folding: Mapped[Optional[int]] = mapped_column(Integer)
    right_wing_folding: Mapped[Optional[int]] = mapped_column(Integer)
    gear_handle_position: Mapped[Optional[int]] = mapped_column(Integer)
    tailhook_handle_position: Mapped[Optional[int]] = mapped_column(Integer)
    folding_wing_handle_position: Mapped[Optional[int]] = mapped_column(Integer)
    steer_input_control: Mapped[Optional[float]] = mapped_column(Float)


class Light(TelemetryMixin, Base):
    __tablename__ = 'light'

    # Bit field of light switch states
    light_states: Mapped[Optional[int]] = mapped_column(Integer)


class PrimaryFlightControl(TelemetryMixin, Base):
    __tablename__ = 'primary_flight_control'

    rudder_position: Mapped[Optional[int]] = mapped_column(Integer)
    elevator_position: Mapped[Optional[int]] = mapped_column(Integer)
    aileron_position: Mapped[Optional[int]] = mapped_column(Integer)
    rudder_deflection: Mapped[Optional[float]] = mapped_column(Float)
    elevator_deflection: Mapped[Optional[float]] = mapped_column(Float)
    aileron_left_deflection: Mapped[Optional[float]] = mapped_column(Float)
    aileron_right_deflection: Mapped[Optional[float]] = mapped_column(Float)


class SecondaryFlightControl(TelemetryMixin, Base):
    __tablename__ = 'secondary_flight_control'

    left_leading_edge_flaps_position: Mapped[Optional[int]] = mapped_column(Integer)
    right_leading_edge_flaps_position: Mapped[Optional[int]] = mapped_column(Integer)
    left_trailing_edge_flaps_position: Mapped[Optional[int]] = mapped_column(Integer)
    right_trailing_edge_flaps_position: Mapped[Optional[int]] = mapped_column(Integer)
    spoilers_handle_percent: Mapped[Optional[int]] = mapped_column(Integer)
    flaps_handle_index: Mapped[Optional[int]] = mapped_column(Integer)
    left_spoilers_position: Mapped[Optional[int]] = mapped_column(Integer)
    right_spoilers_position: Mapped[Optional[int]] = mapped_column(Integer)
    spoilers_armed: Mapped[Optional[int]] = mapped_column(Integer)


class Waypoint(TelemetryMixin, Base):
    """Flight plan waypoints, keyed by the time they were reached."""

    __tablename__ = 'waypoint'

    ident: Mapped[Optional[str]] = mapped_column(String)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    altitude: Mapped[Optional[float]] = mapped_column(Float)
    local_sim_time: Mapped[Optional[str]] = mapped_column(String)
    zulu_sim_time: Mapped[Optional[str]] = mapped_column(String)


# Series whose earliest sample defines the aircraft clock
CLOCK_SERIES: Tuple[Type[TelemetryMixin], ...] = (Position, Attitude, Engine)

# Every series owned by an aircraft; also the order children are deleted in
TELEMETRY_SERIES: Tuple[Type[TelemetryMixin], ...] = CLOCK_SERIES + (
    Handle,
    Light,
    PrimaryFlightControl,
    SecondaryFlightControl,
    Waypoint,
)
