"""SQLAlchemy-backed record store.

Upserts use the native ``INSERT ... ON CONFLICT DO UPDATE`` of
PostgreSQL (including hosted Supabase databases) and SQLite.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from sqlalchemy import create_engine, delete, event, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError

from core.config import FreightConfig
from core.errors import FreightConfigError, FreightDependencyError, FreightStoreError
from core.logging_config import get_logger
from store.migrations import require_current_schema
from store.schema import COLLECTION_TABLES, bookings_table
from store.sql_errors import store_error

_LOGGER = get_logger(__name__)

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def normalize_database_url(database_url: str) -> str:
    """Route bare PostgreSQL URLs to the psycopg 3 driver."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return "postgresql+psycopg://" + database_url[len(prefix) :]
    return database_url


def create_store_engine(database_url: str) -> Engine:
    """Create an engine for the bookings store.

    SQLite connections get foreign keys enabled so cascading deletes and
    parent checks behave as they do on PostgreSQL.

    Raises:
        FreightConfigError: If the URL is malformed or names an unknown
            dialect or driver.
        FreightDependencyError: If the database driver is not installed.
    """
    try:
        engine = create_engine(normalize_database_url(database_url), pool_pre_ping=True)
    except (ArgumentError, NoSuchModuleError) as error:
        raise FreightConfigError(f"Invalid database URL: {error}") from error
    except ImportError as error:
        raise FreightDependencyError(
            f"Database driver for this URL is not installed: {error}"
        ) from error
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class SqlRecordStore:
    """Record store writing one transaction per upsert call."""

    def __init__(self, engine: Engine, statement_timeout_seconds: float | None = None) -> None:
        if engine.dialect.name not in _DIALECT_INSERTS:
            raise FreightStoreError(
                f"Unsupported database dialect '{engine.dialect.name}'. "
                "Use a postgresql:// or sqlite:// database URL."
            )
        self._engine = engine
        self._statement_timeout_seconds = statement_timeout_seconds

    @classmethod
    def from_config(cls, config: FreightConfig) -> "SqlRecordStore":
        """Build a store from runtime configuration.

        Raises:
            FreightConfigError: If no database URL is configured.
        """
        engine = create_store_engine(config.require_database_url())
        return cls(engine, config.chunk_timeout_seconds)

    @property
    def engine(self) -> Engine:
        return self._engine

    def upsert(
        self,
        collection: str,
        records: Sequence[Mapping[str, Any]],
        conflict_keys: Sequence[str],
    ) -> None:
        """Insert records, overwriting non-key columns on key conflicts.

        Raises:
            FreightTransientStoreError: For connection loss or timeouts.
            FreightStoreError: For constraint violations and other failures.
        """
        if not records:
            return
        table = _collection_table(collection)
        statement = _DIALECT_INSERTS[self._engine.dialect.name](table)
        updates: dict[str, Any] = {
            name: statement.excluded[name] for name in records[0] if name not in conflict_keys
        }
        updates["updated_at"] = func.now()
        statement = statement.on_conflict_do_update(
            index_elements=list(conflict_keys), set_=updates
        )
        try:
            with self._engine.begin() as connection:
                self._apply_statement_timeout(connection)
                connection.execute(statement, [dict(record) for record in records])
        except SQLAlchemyError as error:
            raise store_error(
                f"Failed to write {len(records)} records to {collection}", error
            ) from error

    def count(self, collection: str) -> int:
        """Return the number of stored records in a collection."""
        table = _collection_table(collection)
        try:
            with self._engine.connect() as connection:
                return connection.execute(select(func.count()).select_from(table)).scalar_one()
        except SQLAlchemyError as error:
            raise store_error(f"Failed to count {collection}", error) from error

    def purge_bookings(self) -> int:
        """Delete every booking; detail sequences follow by cascade.

        Returns:
            Number of bookings deleted.
        """
        try:
            with self._engine.begin() as connection:
                deleted = connection.execute(delete(bookings_table)).rowcount
        except SQLAlchemyError as error:
            raise store_error("Failed to purge bookings", error) from error
        _LOGGER.warning("bookings_purged", deleted=deleted)
        return deleted

    def require_schema(self) -> int:
        """Return the schema version, failing if migrations are pending."""
        return require_current_schema(self._engine)

    def _apply_statement_timeout(self, connection: Connection) -> None:
        if self._statement_timeout_seconds is None or self._engine.dialect.name != "postgresql":
            return
        timeout_ms = int(self._statement_timeout_seconds * 1000)
        connection.exec_driver_sql(f"SET LOCAL statement_timeout = {timeout_ms}")


def _collection_table(collection: str) -> Any:
    try:
        return COLLECTION_TABLES[collection]
    except KeyError as error:
        raise FreightStoreError(
            f"Unknown collection '{collection}'. "
            f"Known collections: {', '.join(sorted(COLLECTION_TABLES))}."
        ) from error

