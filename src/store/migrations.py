"""Versioned schema migrations.

Migrations run only through an explicit ``migrate`` call. Ingestion
checks the recorded version and refuses to start on an old schema.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from sqlalchemy import inspect, insert, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from core.constants import MIGRATIONS_TABLE
from core.errors import FreightConfigError
from core.logging_config import get_logger
from store.schema import bookings_table, detail_sequences_table, schema_migrations_table
from store.sql_errors import store_error

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class Migration:
    """One schema step identified by a monotonically increasing version."""

    version: int
    description: str
    apply: Callable[[Connection], None]


def _create_booking_tables(connection: Connection) -> None:
    bookings_table.create(connection, checkfirst=True)
    detail_sequences_table.create(connection, checkfirst=True)


def _create_lookup_indexes(connection: Connection) -> None:
    connection.execute(
        text(
            "CREATE INDEX IF NOT EXISTS ix_bookings_confirmation_date "
            "ON bookings (booking_confirmation_date)"
        )
    )
    connection.execute(
        text("CREATE INDEX IF NOT EXISTS ix_bookings_shipcomp_code ON bookings (shipcomp_code)")
    )


MIGRATIONS: tuple[Migration, ...] = (
    Migration(1, "create bookings and detail_sequences", _create_booking_tables),
    Migration(2, "add booking lookup indexes", _create_lookup_indexes),
)
LATEST_SCHEMA_VERSION = MIGRATIONS[-1].version


def current_schema_version(engine: Engine) -> int:
    """Return the highest applied migration version, or 0 if none.

    Raises:
        FreightStoreError: If the store cannot be read.
    """
    try:
        with engine.connect() as connection:
            if not inspect(connection).has_table(MIGRATIONS_TABLE):
                return 0
            versions = connection.execute(select(schema_migrations_table.c.version)).scalars()
            return max(versions, default=0)
    except SQLAlchemyError as error:
        raise store_error("Cannot read the store schema version", error) from error


def apply_migrations(engine: Engine) -> list[int]:
    """Apply every pending migration in version order.

    Returns:
        Versions applied by this call; empty when already current.

    Raises:
        FreightStoreError: If a migration fails; nothing is recorded.
    """
    applied: list[int] = []
    try:
        _apply_pending(engine, applied)
    except SQLAlchemyError as error:
        raise store_error("Failed to migrate the store schema", error) from error
    return applied


def _apply_pending(engine: Engine, applied: list[int]) -> None:
    with engine.begin() as connection:
        schema_migrations_table.create(connection, checkfirst=True)
        done = set(connection.execute(select(schema_migrations_table.c.version)).scalars())
        for migration in MIGRATIONS:
            if migration.version in done:
                continue
            migration.apply(connection)
            connection.execute(
                insert(schema_migrations_table).values(
                    version=migration.version, description=migration.description
                )
            )
            applied.append(migration.version)
            _LOGGER.info(
                "migration_applied",
                version=migration.version,
                description=migration.description,
            )


def require_current_schema(engine: Engine) -> int:
    """Fail fast when the store schema is older than this code expects.

    Raises:
        FreightConfigError: If pending migrations exist.
    """
    version = current_schema_version(engine)
    if version < LATEST_SCHEMA_VERSION:
        raise FreightConfigError(
            f"Store schema is at version {version}, expected {LATEST_SCHEMA_VERSION}. "
            "Run `freight migrate` before ingesting."
        )
    return version
