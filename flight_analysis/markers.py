"""
Marker operations - user annotations on a flight timeline.

Regular markers are free-form. Trim markers stage a trim: each flight
holds at most one trim_start and one trim_end, so creating one replaces
the previous marker of the same kind (upsert by type).
"""

import logging
import math
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from flight_analysis.analytics.distance import find_distance_crossing
from flight_analysis.errors import NotFoundError, ValidationError
from flight_analysis.models import Marker, MarkerType, TRIM_MARKER_TYPES
from flight_analysis.queries import get_flight, get_flight_data

logger = logging.getLogger(__name__)

MARKER_TYPES = tuple(t.value for t in MarkerType)


def validate_marker_time(time_seconds: float) -> float:
    if not math.isfinite(time_seconds):
        raise ValidationError('Marker time must be a finite number of seconds')
    return float(time_seconds)


def list_markers(session: Session, flight_id: int) -> List[Marker]:
    """Markers of a flight in timeline order."""
    return list(session.scalars(
        select(Marker)
        .where(Marker.flight_id == flight_id)
        .order_by(Marker.time_seconds, Marker.id)
    ).all())


def create_marker(
    session: Session,
    flight_id: int,
    time_seconds: float,
    label: str,
    marker_type: str = MarkerType.REGULAR.value,
) -> Marker:
    """
    Trim kinds go through upsert_trim_marker so a flight never holds two
    markers of the same trim kind.

    Raises:
        ValidationError: empty label, unknown marker type or non-finite time.
        NotFoundError: unknown flight.
    """
    label = (label or '').strip()
    if not label:
        raise ValidationError('Marker label is required')
    marker_type = marker_type or MarkerType.REGULAR.value
    if marker_type not in MARKER_TYPES:
        raise ValidationError(f'Unknown marker type: {marker_type}')
    if marker_type in TRIM_MARKER_TYPES:
        return upsert_trim_marker(session, flight_id, marker_type, time_seconds, label)

    return _add_marker(session, flight_id, time_seconds, label, marker_type)


def _add_marker(
    session: Session,
    flight_id: int,
    time_seconds: float,
    label: str,
    marker_type: str,
) -> Marker:
    time_seconds = validate_marker_time(time_seconds)
    get_flight(session, flight_id)

    marker = Marker(
        flight_id=flight_id,
        time_seconds=time_seconds,
        label=label,
        type=marker_type,
    )
    session.add(marker)
    session.flush()
    return marker


def delete_marker(session: Session, marker_id: int) -> None:
    result = session.execute(delete(Marker).where(Marker.id == marker_id))
    if result.rowcount == 0:
        raise NotFoundError(f'Marker {marker_id} not found')


def _trim_marker(session: Session, flight_id: int, kind: str) -> Optional[Marker]:
    return session.scalars(
        select(Marker)
        .where(Marker.flight_id == flight_id, Marker.type == kind)
        .order_by(Marker.id)
        .limit(1)
    ).first()


def upsert_trim_marker(
    session: Session,
    flight_id: int,
    kind: str,
    time_seconds: float,
    label: str,
) -> Marker:
    """
    Set the flight's trim_start or trim_end marker.

    Raises:
        ValidationError: kind is not a trim marker type.
        NotFoundError: unknown flight.
    """
    if kind not in TRIM_MARKER_TYPES:
        raise ValidationError(
            f"Invalid trim marker type '{kind}', expected trim_start or trim_end"
        )
    time_seconds = validate_marker_time(time_seconds)

    existing = _trim_marker(session, flight_id, kind)
    if existing is None:
        return _add_marker(session, flight_id, time_seconds, (label or '').strip() or kind, kind)

    existing.time_seconds = time_seconds
    existing.label = label or existing.label
    session.flush()
    return existing


def get_trim_markers(session: Session, flight_id: int) -> Dict[str, Optional[Marker]]:
    return {kind: _trim_marker(session, flight_id, kind) for kind in TRIM_MARKER_TYPES}


def delete_trim_markers(session: Session, flight_id: int) -> int:
    """Remove both trim markers; returns how many existed."""
    result = session.execute(
        delete(Marker).where(
            Marker.flight_id == flight_id,
            Marker.type.in_(TRIM_MARKER_TYPES),
        )
    )
    return result.rowcount


def create_distance_markers(
    session: Session,
    flight_id: int,
    reference: Tuple[float, float],
    reference_name: str,
    distance_nm: float,
    tolerance_nm: float,
) -> List[Marker]:
    """
    Mark where each aircraft first crosses a range ring around a reference.

    Returns the markers created (none for aircraft that never cross).
    """
    data = get_flight_data(session, flight_id)

    created = []
    for label, points in data.positions.items():
        crossing = find_distance_crossing(
            ((p.timestamp_seconds, p.latitude, p.longitude) for p in points),
            reference,
            distance_nm,
            tolerance_nm,
        )
        if crossing is None:
            continue
        created.append(create_marker(
            session,
            flight_id,
            crossing,
            f'{distance_nm:g}nm from {reference_name} - {label}',
        ))

    logger.info(f'Created {len(created)} distance markers for flight {flight_id}')
    return created
