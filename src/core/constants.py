"""Core constants used across Freight modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

BOOKINGS_COLLECTION = "bookings"
DETAILS_COLLECTION = "detail_sequences"
MIGRATIONS_TABLE = "schema_migrations"
BOOKING_KEY_COLUMN = "job_reference"
SEQUENCE_KEY_COLUMN = "job_dtl_sequence"
BOOKING_CONFLICT_KEYS = (BOOKING_KEY_COLUMN,)
DETAIL_CONFLICT_KEYS = (BOOKING_KEY_COLUMN, SEQUENCE_KEY_COLUMN)
BOOKINGS_PHASE = "bookings"
DETAILS_PHASE = "details"
DEFAULT_CHUNK_SIZE = 500
DEFAULT_LOAD_WORKERS = 1
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BACKOFF_SECONDS = 0.5
DEFAULT_CHUNK_TIMEOUT_SECONDS = 60.0
DEFAULT_PROGRESS_INTERVAL = 1000
DEFAULT_MAX_REPORTED_ERRORS = 10
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ENV_FILES = (".env.local", ".env")
DELIMITED_SUFFIXES = {".csv": ",", ".tsv": "\t"}
RECORD_SUFFIXES = (".jsonl", ".ndjson")
SUPPORTED_SOURCE_SUFFIXES = (".csv", ".tsv", ".jsonl", ".ndjson")
QUOTE_CHAR = '"'
TRUE_TOKENS = frozenset({"true", "1"})
