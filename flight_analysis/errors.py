"""
Error taxonomy for the flight record store.

Every failure the store surfaces is a FlightStoreError subclass carrying
the HTTP status the API layer answers with:

- ValidationError: bad or missing parameters, rejected before any write
- SourceSchemaError: a foreign database or CSV that cannot be imported
- NotFoundError: unknown flight or marker id
- TransactionError: a write failed mid-transaction and was rolled back
- SchemaError: the canonical schema could not be created or migrated
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError


class FlightStoreError(Exception):
    """Base class for store errors."""
    status_code = 500


class ValidationError(FlightStoreError):
    status_code = 400


class RangeTooSmallError(ValidationError):
    """Trim window shorter than the minimum span."""


class TitleExistsError(ValidationError):
    """Derived flight title collides with an existing flight."""
    status_code = 409

    def __init__(self, title: str):
        super().__init__(f"Flight with title '{title}' already exists")
        self.title = title


class SourceSchemaError(FlightStoreError):
    status_code = 400


class NotFoundError(FlightStoreError):
    status_code = 404


class TransactionError(FlightStoreError):
    status_code = 500


class SchemaError(FlightStoreError):
    status_code = 500


@contextmanager
def transaction_step(description: str) -> Iterator[None]:
    """
    Label a sub-step of a transactional operation.

    Database errors raised inside the block are re-raised as
    TransactionError naming the step, so callers learn where a copy
    failed. The surrounding session still rolls back.
    """
    try:
        yield
    except SQLAlchemyError as e:
        raise TransactionError(f'failed to {description}: {e}') from e
