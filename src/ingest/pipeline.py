"""Ingest orchestration for booking source files.

This module drives each source file through reading, entity building,
and the two load phases, and aggregates per-file results into one
run report. A fatal error in one file does not stop the next file.
"""

from __future__ import annotations

import itertools
import time
from typing import Iterator

from core.config import FreightConfig
from core.errors import FreightError
from core.logging_config import get_logger
from core.types import BuildResult, FileReport, IngestOptions, LoadResult, RawRow, RunReport
from ingest.batch_loader import BatchLoader, LoadSettings
from ingest.entity_builder import build_entities
from ingest.progress import ProgressTracker
from ingest.record_reader import RecordReader, dialect_for_source
from ingest.source_listing import list_source_files, open_source_lines
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)


class IngestRunner:
    """Sequential runner over every source file of one ingest request."""

    def __init__(self, options: IngestOptions, config: FreightConfig, store: RecordStore) -> None:
        self._options = options
        self._config = config
        self._store = store
        self._loaded_bookings: set[str] = set()
        self._loaded_details: set[tuple[str, int]] = set()
        self._settings = LoadSettings.from_config(
            config,
            chunk_size=options.chunk_size,
            load_workers=options.load_workers,
        )

    def run(self) -> RunReport:
        """Ingest every matching source file and return the run report.

        Raises:
            FreightConfigError: If the source is missing or empty.
        """
        started_at = time.monotonic()
        sources = list_source_files(self._options.source, self._options.suffixes, self._config)
        _LOGGER.info(
            "ingest_started",
            source=self._options.source,
            file_count=len(sources),
            chunk_size=self._settings.chunk_size,
            load_workers=self._settings.load_workers,
        )
        reports = [
            self._ingest_guarded(source, position, len(sources))
            for position, source in enumerate(sources, 1)
        ]
        report = RunReport(files=tuple(reports), elapsed_seconds=time.monotonic() - started_at)
        _LOGGER.info(
            "ingest_completed",
            source=self._options.source,
            files_succeeded=report.files_succeeded,
            files_failed=report.files_failed,
            rows_read=report.rows_read,
            rows_rejected=report.rows_rejected,
            inserted_bookings=report.inserted_bookings,
            inserted_details=report.inserted_details,
            elapsed_seconds=round(report.elapsed_seconds, 2),
        )
        return report

    def ingest_file(self, source: str) -> FileReport:
        """Read, build, and load one source file.

        Bookings and detail keys loaded by earlier files of this runner
        are not written again.

        Raises:
            FreightIngestError: If the file cannot be read.
        """
        dialect = dialect_for_source(source)
        row_limit = self._options.max_rows_per_file or self._config.max_rows_per_file
        with open_source_lines(source, self._config) as lines:
            reader = RecordReader(lines, dialect, source=source)
            progress = ProgressTracker(
                event="rows_parsed", interval=self._config.progress_interval, source=source
            )
            rows: Iterator[RawRow] = reader.rows()
            if row_limit is not None:
                rows = itertools.islice(rows, row_limit)
            build = build_entities(
                rows,
                progress,
                known_bookings=self._loaded_bookings,
                known_details=self._loaded_details,
            )
        truncated = row_limit is not None and progress.count >= row_limit
        _LOGGER.info(
            "file_parsed",
            source=source,
            rows_read=reader.rows_read,
            malformed_rows=len(reader.rejections),
            missing_key_rows=build.rejected,
            bookings=len(build.bookings),
            details=len(build.details),
            duplicate_details=build.duplicate_details,
            duplicate_bookings=build.duplicate_bookings,
            truncated=truncated,
        )
        loader = BatchLoader(self._store, self._settings, source=source)
        load = loader.load(build.bookings, build.details)
        if load.booking_phase.succeeded:
            self._loaded_bookings.update(build.bookings)
        if load.detail_phase.succeeded:
            self._loaded_details.update(detail.key for detail in build.details)
        return _build_file_report(
            source, reader, build, load, self._config.max_reported_errors, truncated
        )

    def _ingest_guarded(self, source: str, position: int, total: int) -> FileReport:
        _LOGGER.info("file_started", source=source, position=position, total=total)
        try:
            report = self.ingest_file(source)
        except FreightError as error:
            _LOGGER.error("file_failed", source=source, error=str(error))
            return FileReport(source=source, errors=(str(error),), succeeded=False)
        _LOGGER.info(
            "file_ingested",
            source=source,
            succeeded=report.succeeded,
            inserted_bookings=report.inserted_bookings,
            inserted_details=report.inserted_details,
        )
        return report


def ingest_sources(options: IngestOptions, config: FreightConfig, store: RecordStore) -> RunReport:
    """Run the ingest pipeline over a file, directory, or S3 prefix.

    Args:
        options: Ingest request options.
        config: Runtime configuration.
        store: Store receiving the upserts.

    Returns:
        Aggregated run report.

    Raises:
        FreightConfigError: If the source is missing or holds no files.
    """
    return IngestRunner(options, config, store).run()


def _build_file_report(
    source: str,
    reader: RecordReader,
    build: BuildResult,
    load: LoadResult,
    max_errors: int,
    truncated: bool = False,
) -> FileReport:
    """Combine reader, builder, and loader results for one file."""
    rejections = sorted(
        [*reader.rejections, *build.rejections], key=lambda rejection: rejection.line_number
    )
    messages = [failure.describe() for failure in load.errors]
    messages.extend(f"line {item.line_number}: {item.reason}" for item in rejections)
    return FileReport(
        source=source,
        rows_read=reader.rows_read,
        rows_rejected=len(rejections),
        duplicate_details=build.duplicate_details,
        duplicate_bookings=build.duplicate_bookings,
        truncated=truncated,
        bookings_built=len(build.bookings),
        details_built=len(build.details),
        inserted_bookings=load.inserted_bookings,
        inserted_details=load.inserted_details,
        booking_chunks_committed=load.booking_phase.committed_chunks,
        detail_chunks_committed=load.detail_phase.committed_chunks,
        errors=tuple(messages[:max_errors]),
        succeeded=load.succeeded,
    )
