"""Python SDK for booking ingestion and store administration.

This module exposes high-level APIs for ingest, schema migration,
store status, and explicit bulk cleanup.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.config import FreightConfig
from core.constants import BOOKINGS_COLLECTION, DETAILS_COLLECTION
from core.types import IngestOptions, RunReport
from ingest.pipeline import ingest_sources
from store.migrations import LATEST_SCHEMA_VERSION, apply_migrations, current_schema_version
from store.record_store import RecordStore
from store.sql_store import SqlRecordStore


@dataclass(frozen=True)
class StoreStatus:
    """Connectivity and content summary of the bookings store."""

    schema_version: int
    latest_schema_version: int
    bookings: int | None
    detail_sequences: int | None


class FreightClient:
    """Primary SDK entry point for booking ingestion."""

    def __init__(
        self,
        config: FreightConfig | None = None,
        store: RecordStore | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            store: Optional store override, e.g. a test double. When
                omitted an SQL store is built from ``config`` on first use.
        """
        self._config = config or FreightConfig.from_env()
        self._store = store
        self._sql_store = store if isinstance(store, SqlRecordStore) else None

    def ingest(self, options: IngestOptions) -> RunReport:
        """Ingest a file, directory, or S3 prefix of booking exports.

        Args:
            options: Ingest options.

        Returns:
            Aggregated run report.

        Raises:
            FreightConfigError: If credentials, source, or schema are missing.
        """
        store = self._store or self._require_sql_store()
        if store is self._sql_store:
            self._sql_store.require_schema()
        return ingest_sources(options, self._config, store)

    def migrate(self) -> list[int]:
        """Apply pending schema migrations and return applied versions."""
        return apply_migrations(self._require_sql_store().engine)

    def status(self) -> StoreStatus:
        """Report schema version and row counts of the store."""
        sql_store = self._require_sql_store()
        version = current_schema_version(sql_store.engine)
        if version == 0:
            return StoreStatus(0, LATEST_SCHEMA_VERSION, None, None)
        return StoreStatus(
            schema_version=version,
            latest_schema_version=LATEST_SCHEMA_VERSION,
            bookings=sql_store.count(BOOKINGS_COLLECTION),
            detail_sequences=sql_store.count(DETAILS_COLLECTION),
        )

    def purge(self) -> int:
        """Delete all bookings and, by cascade, their detail sequences."""
        return self._require_sql_store().purge_bookings()

    def _require_sql_store(self) -> SqlRecordStore:
        if self._sql_store is None:
            self._sql_store = SqlRecordStore.from_config(self._config)
        return self._sql_store
