"""Shared typed models.

This module defines immutable data models used by the reader, builder,
loader, coordinator, and CLI layers to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from core.constants import BOOKING_KEY_COLUMN, SEQUENCE_KEY_COLUMN, SUPPORTED_SOURCE_SUFFIXES


@dataclass(frozen=True)
class RawRow:
    """One source record before normalization.

    Attributes:
        line_number: One-based physical line number in the source.
        fields: Header name to raw string value.
    """

    line_number: int
    fields: Mapping[str, str]


@dataclass(frozen=True)
class RowRejection:
    """A source row skipped during reading or entity building."""

    line_number: int
    reason: str


@dataclass(frozen=True)
class BookingAggregate:
    """Parent booking entity keyed by job reference.

    Attributes:
        job_reference: Natural key, never empty.
        attributes: Normalized non-key column values.
        line_number: Source line the booking was first seen on.
    """

    job_reference: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    line_number: int = 0

    def to_record(self) -> dict[str, Any]:
        """Return the storage payload for this booking."""
        return {BOOKING_KEY_COLUMN: self.job_reference, **self.attributes}


@dataclass(frozen=True)
class DetailSequence:
    """Child detail entity keyed by job reference and sequence number."""

    job_reference: str
    sequence_number: int
    attributes: Mapping[str, Any] = field(default_factory=dict)
    line_number: int = 0

    @property
    def key(self) -> tuple[str, int]:
        """Composite conflict key."""
        return (self.job_reference, self.sequence_number)

    def to_record(self) -> dict[str, Any]:
        """Return the storage payload for this detail row."""
        return {
            BOOKING_KEY_COLUMN: self.job_reference,
            SEQUENCE_KEY_COLUMN: self.sequence_number,
            **self.attributes,
        }


@dataclass(frozen=True)
class BuildResult:
    """Entities produced by one pass over a row stream.

    Attributes:
        bookings: Unique bookings in first-seen order.
        details: Detail rows in source order.
        rejected: Rows dropped for a missing job reference.
        rejections: Context for each dropped row.
        duplicate_details: Detail keys already seen earlier in the run.
        duplicate_bookings: Bookings already loaded from an earlier file
            of the run; their rows only contribute new detail sequences.
    """

    bookings: dict[str, BookingAggregate]
    details: list[DetailSequence]
    rejected: int
    rejections: list[RowRejection]
    duplicate_details: int = 0
    duplicate_bookings: int = 0


@dataclass(frozen=True)
class ChunkFailure:
    """Storage failure for one chunk, with row-range context.

    Attributes:
        phase: Load phase name.
        chunk_index: Zero-based chunk index inside the phase.
        first_row: Zero-based index of the first record in the chunk.
        last_row: Zero-based index of the last record in the chunk.
        message: Store error message.
        first_line: Lowest source line among the chunk records, if known.
        last_line: Highest source line among the chunk records, if known.
    """

    phase: str
    chunk_index: int
    first_row: int
    last_row: int
    message: str
    first_line: int | None = None
    last_line: int | None = None

    def describe(self) -> str:
        """Render a one-line human readable description."""
        location = f"records {self.first_row}-{self.last_row}"
        if self.first_line is not None:
            location += f", source lines {self.first_line}-{self.last_line}"
        return f"{self.phase} chunk {self.chunk_index} ({location}): {self.message}"


@dataclass(frozen=True)
class PhaseResult:
    """Outcome of one ordered load phase."""

    phase: str
    total_chunks: int
    committed_chunks: int
    committed_records: int
    failure: ChunkFailure | None = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        """Whether every chunk of the phase was committed."""
        return self.failure is None and not self.skipped


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading bookings then details."""

    booking_phase: PhaseResult
    detail_phase: PhaseResult

    @property
    def inserted_bookings(self) -> int:
        return self.booking_phase.committed_records

    @property
    def inserted_details(self) -> int:
        return self.detail_phase.committed_records

    @property
    def errors(self) -> list[ChunkFailure]:
        """Fatal chunk failures in phase order."""
        phases = (self.booking_phase, self.detail_phase)
        return [phase.failure for phase in phases if phase.failure is not None]

    @property
    def succeeded(self) -> bool:
        return self.booking_phase.succeeded and self.detail_phase.succeeded


@dataclass(frozen=True)
class IngestOptions:
    """Options for one ingest run.

    Attributes:
        source: Source file, directory, or ``s3://bucket/prefix``.
        suffixes: File suffixes selected when listing a directory.
        chunk_size: Records per upsert call; ``None`` uses the config.
        load_workers: Concurrent chunk submissions per phase; ``None``
            uses the config.
        max_rows_per_file: Stop reading a file after this many accepted
            rows; ``None`` reads every row.
    """

    source: str
    suffixes: tuple[str, ...] = SUPPORTED_SOURCE_SUFFIXES
    chunk_size: int | None = None
    load_workers: int | None = None
    max_rows_per_file: int | None = None


@dataclass(frozen=True)
class FileReport:
    """Summary of ingesting one source file."""

    source: str
    rows_read: int = 0
    rows_rejected: int = 0
    duplicate_details: int = 0
    duplicate_bookings: int = 0
    truncated: bool = False
    bookings_built: int = 0
    details_built: int = 0
    inserted_bookings: int = 0
    inserted_details: int = 0
    booking_chunks_committed: int = 0
    detail_chunks_committed: int = 0
    errors: tuple[str, ...] = ()
    succeeded: bool = True


@dataclass(frozen=True)
class RunReport:
    """Aggregated summary of an ingest run across files."""

    files: tuple[FileReport, ...]
    elapsed_seconds: float

    @property
    def files_succeeded(self) -> int:
        return sum(1 for report in self.files if report.succeeded)

    @property
    def files_failed(self) -> int:
        return len(self.files) - self.files_succeeded

    @property
    def rows_read(self) -> int:
        return sum(report.rows_read for report in self.files)

    @property
    def rows_rejected(self) -> int:
        return sum(report.rows_rejected for report in self.files)

    @property
    def bookings_built(self) -> int:
        return sum(report.bookings_built for report in self.files)

    @property
    def details_built(self) -> int:
        return sum(report.details_built for report in self.files)

    @property
    def inserted_bookings(self) -> int:
        return sum(report.inserted_bookings for report in self.files)

    @property
    def inserted_details(self) -> int:
        return sum(report.inserted_details for report in self.files)

    @property
    def booking_chunks_committed(self) -> int:
        return sum(report.booking_chunks_committed for report in self.files)

    @property
    def detail_chunks_committed(self) -> int:
        return sum(report.detail_chunks_committed for report in self.files)

    def first_errors(self, limit: int) -> list[str]:
        """Return up to ``limit`` error messages prefixed by source."""
        messages = [
            f"{report.source}: {message}" for report in self.files for message in report.errors
        ]
        return messages[:limit]
