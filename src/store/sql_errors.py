"""Translation of SQLAlchemy failures into Freight store errors."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from core.errors import FreightStoreError, FreightTransientStoreError


def error_summary(error: SQLAlchemyError) -> str:
    """Return the driver message without the echoed SQL and parameters."""
    original = getattr(error, "orig", None) or error
    lines = str(original).strip().splitlines()
    return lines[0] if lines else type(error).__name__


def store_error(action: str, error: SQLAlchemyError) -> FreightStoreError:
    """Wrap ``error`` as a store error naming the failed ``action``.

    Connection failures, pool timeouts, and invalidated connections map
    to ``FreightTransientStoreError`` so callers may retry them.
    """
    message = f"{action}: {error_summary(error)}"
    if isinstance(error, (OperationalError, PoolTimeoutError)):
        return FreightTransientStoreError(message)
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return FreightTransientStoreError(message)
    return FreightStoreError(message)
