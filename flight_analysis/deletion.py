"""
Flight deletion in explicit foreign-key order.

Logbook schemas do not declare cascades uniformly, so children are
removed deepest first instead of relying on ON DELETE behaviour:
every telemetry series per aircraft, then markers, then aircraft, then
the flight itself.
"""

import logging
from typing import Dict

from sqlalchemy import delete
from sqlalchemy.orm import Session

from flight_analysis.errors import ValidationError, transaction_step
from flight_analysis.models import Aircraft, Flight, Marker, TELEMETRY_SERIES
from flight_analysis.queries import aircraft_for_flight, get_flight

logger = logging.getLogger(__name__)


def delete_flight(session: Session, flight_id: int) -> Dict[str, int]:
    """
    Delete a flight and everything it owns inside the caller's transaction.

    Returns rows removed per table.

    Raises:
        ValidationError: non-positive id.
        NotFoundError: unknown flight; nothing is deleted.
    """
    if flight_id <= 0:
        raise ValidationError(f'Invalid flight ID: {flight_id}')

    get_flight(session, flight_id)

    removed: Dict[str, int] = {}
    for aircraft in aircraft_for_flight(session, flight_id):
        for model in TELEMETRY_SERIES:
            name = model.__tablename__
            with transaction_step(f'delete {name} data for aircraft {aircraft.id}'):
                result = session.execute(
                    delete(model).where(model.aircraft_id == aircraft.id)
                )
            removed[name] = removed.get(name, 0) + result.rowcount

    with transaction_step('delete markers'):
        removed['markers'] = session.execute(
            delete(Marker).where(Marker.flight_id == flight_id)
        ).rowcount

    with transaction_step('delete aircraft'):
        removed['aircraft'] = session.execute(
            delete(Aircraft).where(Aircraft.flight_id == flight_id)
        ).rowcount

    with transaction_step('delete flight'):
        removed['flight'] = session.execute(
            delete(Flight).where(Flight.id == flight_id)
        ).rowcount

    logger.info(f'Deleted flight {flight_id}: {removed}')
    return removed
