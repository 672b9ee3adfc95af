"""
Aircraft model - one simulated vehicle within a flight.

Each aircraft owns its telemetry series. The sequence number is unique
per flight; the flight header points at the user's aircraft by it.
"""

from typing import Optional

from sqlalchemy import String, Float, Integer, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from flight_analysis.models.base import Base


class Aircraft(Base):
    """
    Per-flight aircraft row with its initial state.

    Fields:
        seq_nr: Position of the aircraft within the flight (1-based)
        type: Simulator aircraft title (e.g., 'Cessna 172 Skyhawk')
        time_offset: Offset of this aircraft's recording in milliseconds
        tail_number: Registration shown on the aircraft (e.g., 'G-ABCD')
    """

    __tablename__ = 'aircraft'

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    flight_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('flight.id'),
        nullable=False,
        comment='Owning flight'
    )

    seq_nr: Mapped[int] = mapped_column(Integer, nullable=False)

    type: Mapped[str] = mapped_column(
        String,
        nullable=False,
        comment='Aircraft type title'
    )

    time_offset: Mapped[Optional[int]] = mapped_column(Integer)
    tail_number: Mapped[Optional[str]] = mapped_column(String)
    airline: Mapped[Optional[str]] = mapped_column(String)

    # Initial state
    initial_airspeed: Mapped[Optional[int]] = mapped_column(Integer)
    altitude_above_ground: Mapped[Optional[float]] = mapped_column(Float)
    start_on_ground: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index('aircraft_idx1', 'flight_id', 'seq_nr', unique=True),
        Index('aircraft_idx2', 'type'),
    )

    def __repr__(self) -> str:
        return f'<Aircraft {self.id} seq={self.seq_nr} {self.type!r}>'

    @property
    def label(self) -> str:
        """Display label used to key per-aircraft series, e.g. 'C172 (G-ABCD)'."""
        return aircraft_label(self.type, self.tail_number)


def aircraft_label(aircraft_type: Optional[str], tail_number: Optional[str]) -> str:
    if not tail_number:
        return aircraft_type or ''
    return f'{aircraft_type or ""} ({tail_number})'
