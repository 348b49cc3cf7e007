"""Public SDK surface for Freight.

This module provides a stable import path for ingestion users.
It re-exports the primary client, the pipeline stages, and typed models.
"""

from __future__ import annotations

from core.config import FreightConfig
from core.types import (
    BookingAggregate,
    BuildResult,
    DetailSequence,
    FileReport,
    IngestOptions,
    LoadResult,
    RawRow,
    RunReport,
)
from ingest.batch_loader import BatchLoader, LoadSettings
from ingest.entity_builder import build_entities
from ingest.pipeline import ingest_sources
from ingest.tokenizer import parse_line
from store.booking_sdk import FreightClient, StoreStatus
from store.record_store import RecordStore
from store.sql_store import SqlRecordStore

__all__ = [
    "BatchLoader",
    "BookingAggregate",
    "BuildResult",
    "DetailSequence",
    "FileReport",
    "FreightClient",
    "FreightConfig",
    "IngestOptions",
    "LoadResult",
    "LoadSettings",
    "RawRow",
    "RecordStore",
    "RunReport",
    "SqlRecordStore",
    "StoreStatus",
    "build_entities",
    "ingest_sources",
    "parse_line",
]
