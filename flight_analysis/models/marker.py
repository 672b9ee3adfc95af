"""
Marker model - labelled annotations on a flight timeline.

Markers are positioned in elapsed seconds on the flight's own clock, not
in absolute timestamps, so they survive duplication unchanged and shift
cleanly when a flight is trimmed.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Float, Integer, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from flight_analysis.models.base import Base


class MarkerType(str, Enum):
    """Marker discriminator."""
    REGULAR = 'regular'
    TRIM_START = 'trim_start'
    TRIM_END = 'trim_end'


TRIM_MARKER_TYPES = (MarkerType.TRIM_START.value, MarkerType.TRIM_END.value)


class Marker(Base):
    """
    User annotation attached to a flight.

    At most one trim_start and one trim_end marker exist per flight. That
    is kept by upsert-by-type in the marker operations, not by a
    constraint, because the column was added to existing databases.
    """

    __tablename__ = 'markers'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    flight_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey('flight.id', ondelete='CASCADE'),
        nullable=False,
    )

    time_seconds: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        comment='Elapsed seconds from the aircraft clock zero'
    )

    label: Mapped[str] = mapped_column(String, nullable=False)

    type: Mapped[str] = mapped_column(
        String,
        nullable=False,
        default=MarkerType.REGULAR.value,
        server_default=text("'regular'"),
    )

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        server_default=text('CURRENT_TIMESTAMP'),
    )

    __table_args__ = (
        Index('markers_flight_id_idx', 'flight_id'),
        Index('markers_time_idx', 'flight_id', 'time_seconds'),
        Index('markers_type_idx', 'flight_id', 'type'),
    )

    def __repr__(self) -> str:
        return f'<Marker {self.id} {self.type} @ {self.time_seconds}s>'

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'flight_id': self.flight_id,
            'time_seconds': self.time_seconds,
            'label': self.label,
            'type': self.type or MarkerType.REGULAR.value,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
