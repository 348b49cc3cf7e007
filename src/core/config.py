"""Runtime configuration model for Freight.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CHUNK_TIMEOUT_SECONDS,
    DEFAULT_LOAD_WORKERS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_REPORTED_ERRORS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PROGRESS_INTERVAL,
    DEFAULT_RETRY_BACKOFF_SECONDS,
)
from core.errors import FreightConfigError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass(frozen=True)
class FreightConfig:
    """Validated runtime configuration.

    Attributes:
        database_url: SQLAlchemy URL of the bookings store, if configured.
        data_dir: Default source directory when no path is given.
        chunk_size: Records per upsert call.
        load_workers: Concurrent chunk submissions per load phase.
        max_retries: Retries for a chunk after a transient store error.
        retry_backoff_seconds: Base delay doubled on every retry.
        chunk_timeout_seconds: Statement timeout applied to one chunk.
        progress_interval: Record count between progress events.
        max_reported_errors: Errors kept in run summaries.
        max_rows_per_file: Accepted rows read per file before stopping;
            ``None`` reads whole files.
        log_level: Minimum structured log level.
        s3_region: Optional default AWS region for S3 sources.
        s3_profile: Optional AWS profile for boto3 sessions.
    """

    database_url: str | None
    data_dir: Path | None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    load_workers: int = DEFAULT_LOAD_WORKERS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    chunk_timeout_seconds: float | None = DEFAULT_CHUNK_TIMEOUT_SECONDS
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    max_reported_errors: int = DEFAULT_MAX_REPORTED_ERRORS
    max_rows_per_file: int | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    s3_region: str | None = None
    s3_profile: str | None = None

    @classmethod
    def from_env(cls) -> "FreightConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            FreightConfigError: If environment values are invalid.
        """
        database_url = os.getenv("FREIGHT_DATABASE_URL") or os.getenv("SUPABASE_DB_URL")
        data_dir_value = os.getenv("FREIGHT_DATA_DIR")
        timeout_value = _parse_float(
            "FREIGHT_CHUNK_TIMEOUT_SECONDS", str(DEFAULT_CHUNK_TIMEOUT_SECONDS)
        )
        row_limit = _parse_non_negative_int("FREIGHT_MAX_ROWS_PER_FILE", "0")
        return cls(
            database_url=database_url or None,
            data_dir=Path(data_dir_value).expanduser() if data_dir_value else None,
            chunk_size=_parse_positive_int("FREIGHT_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE)),
            load_workers=_parse_positive_int("FREIGHT_LOAD_WORKERS", str(DEFAULT_LOAD_WORKERS)),
            max_retries=_parse_non_negative_int("FREIGHT_MAX_RETRIES", str(DEFAULT_MAX_RETRIES)),
            retry_backoff_seconds=_parse_float(
                "FREIGHT_RETRY_BACKOFF_SECONDS", str(DEFAULT_RETRY_BACKOFF_SECONDS)
            ),
            chunk_timeout_seconds=timeout_value if timeout_value > 0 else None,
            progress_interval=_parse_positive_int(
                "FREIGHT_PROGRESS_INTERVAL", str(DEFAULT_PROGRESS_INTERVAL)
            ),
            max_reported_errors=_parse_positive_int(
                "FREIGHT_MAX_REPORTED_ERRORS", str(DEFAULT_MAX_REPORTED_ERRORS)
            ),
            max_rows_per_file=row_limit or None,
            log_level=_parse_log_level(os.getenv("FREIGHT_LOG_LEVEL", DEFAULT_LOG_LEVEL)),
            s3_region=os.getenv("FREIGHT_S3_REGION"),
            s3_profile=os.getenv("FREIGHT_S3_PROFILE"),
        )

    def require_database_url(self) -> str:
        """Return the configured database URL or fail fast.

        Raises:
            FreightConfigError: If no database URL is configured.
        """
        if not self.database_url:
            raise FreightConfigError(
                "Missing database credentials: FREIGHT_DATABASE_URL is not set. "
                "Set FREIGHT_DATABASE_URL (or SUPABASE_DB_URL) to a postgresql:// URL."
            )
        return self.database_url


def _parse_positive_int(name: str, default: str) -> int:
    """Parse an integer environment value that must be at least one."""
    value = _parse_non_negative_int(name, default)
    if value < 1:
        raise FreightConfigError(
            f"Invalid {name} value: expected a positive integer, got '{value}'."
        )
    return value


def _parse_non_negative_int(name: str, default: str) -> int:
    """Parse an integer environment value that must not be negative.

    Args:
        name: Environment variable name.
        default: Raw default used when variable is unset.

    Returns:
        Parsed integer.

    Raises:
        FreightConfigError: If value is not a non-negative integer.
    """
    raw_value = os.getenv(name, default)
    try:
        value = int(raw_value)
    except ValueError as error:
        raise FreightConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error
    if value < 0:
        raise FreightConfigError(
            f"Invalid {name} value: expected a non-negative integer, got '{raw_value}'."
        )
    return value


def _parse_float(name: str, default: str) -> float:
    """Parse a non-negative float environment value."""
    raw_value = os.getenv(name, default)
    try:
        value = float(raw_value)
    except ValueError as error:
        raise FreightConfigError(
            f"Invalid {name} value: expected number, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error
    if value < 0:
        raise FreightConfigError(f"Invalid {name} value: expected >= 0, got '{raw_value}'.")
    return value


def _parse_log_level(raw_value: str) -> str:
    level = raw_value.strip().upper()
    if level not in _LOG_LEVELS:
        raise FreightConfigError(
            f"Invalid FREIGHT_LOG_LEVEL value '{raw_value}'. "
            f"Use one of: {', '.join(_LOG_LEVELS)}."
        )
    return level
