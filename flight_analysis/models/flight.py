"""
Flight model - one recorded simulation session.

A flight owns its aircraft (and through them every telemetry series) and
its markers. Title uniqueness is not a schema constraint; duplicate and
trim check it before writing.

Sim times are stored as ISO-8601 text, exactly as flight-recorder logbooks
write them, so imported rows keep their original representation.
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, text
from sqlalchemy.orm import Mapped, mapped_column

from flight_analysis.models.base import Base

UNTITLED = 'Untitled'
NO_NUMBER = 'No Number'

_ZULU_NOW = text("(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))")
_LOCAL_NOW = text("(strftime('%Y-%m-%dT%H:%M:%f', 'now', 'localtime'))")


class Flight(Base):
    """
    Flight header row.

    Environment fields are a snapshot of the simulator state at the start
    of the recording.
    """

    __tablename__ = 'flight'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    creation_time: Mapped[str] = mapped_column(
        String,
        nullable=False,
        server_default=_ZULU_NOW,
        comment='Row creation time (UTC)'
    )

    # Sequence number of the aircraft the user flew
    user_aircraft_seq_nr: Mapped[int] = mapped_column(Integer, nullable=False)

    title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    flight_number: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    # Environment snapshot
    surface_type: Mapped[Optional[int]] = mapped_column(Integer)
    surface_condition: Mapped[Optional[int]] = mapped_column(Integer)
    on_any_runway: Mapped[Optional[int]] = mapped_column(Integer)
    on_parking_spot: Mapped[Optional[int]] = mapped_column(Integer)
    ground_altitude: Mapped[Optional[float]] = mapped_column(Float)
    ambient_temperature: Mapped[Optional[float]] = mapped_column(Float)
    total_air_temperature: Mapped[Optional[float]] = mapped_column(Float)
    wind_speed: Mapped[Optional[float]] = mapped_column(Float)
    wind_direction: Mapped[Optional[float]] = mapped_column(Float)
    visibility: Mapped[Optional[float]] = mapped_column(Float)
    sea_level_pressure: Mapped[Optional[float]] = mapped_column(Float)
    pitot_icing: Mapped[Optional[float]] = mapped_column(Float)
    structural_icing: Mapped[Optional[float]] = mapped_column(Float)
    precipitation_state: Mapped[Optional[int]] = mapped_column(Integer)
    in_clouds: Mapped[Optional[int]] = mapped_column(Integer)

    # Two time bases: simulator local time and zulu (UTC)
    start_local_sim_time: Mapped[str] = mapped_column(
        String, nullable=False, server_default=_LOCAL_NOW
    )
    start_zulu_sim_time: Mapped[str] = mapped_column(
        String, nullable=False, server_default=_ZULU_NOW
    )
    end_local_sim_time: Mapped[str] = mapped_column(
        String, nullable=False, server_default=_LOCAL_NOW
    )
    end_zulu_sim_time: Mapped[str] = mapped_column(
        String, nullable=False, server_default=_ZULU_NOW
    )

    def __repr__(self) -> str:
        return f'<Flight {self.id} {self.title!r}>'

    @property
    def display_title(self) -> str:
        """Title for display, defaulted when never set."""
        return display_title(self.title)

    @property
    def display_flight_number(self) -> str:
        return display_flight_number(self.flight_number)


def display_title(title: Optional[str]) -> str:
    return title or UNTITLED


def display_flight_number(flight_number: Optional[str]) -> str:
    return flight_number or NO_NUMBER
