"""Chunked, ordered upsert of bookings then detail sequences.

Every booking chunk must be committed before the first detail chunk is
submitted, so detail rows never reference a booking missing from the
store. A failed chunk stops its phase; committed chunks stay committed.
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from core.config import FreightConfig
from core.constants import (
    BOOKING_CONFLICT_KEYS,
    BOOKINGS_COLLECTION,
    BOOKINGS_PHASE,
    DETAIL_CONFLICT_KEYS,
    DETAILS_COLLECTION,
    DETAILS_PHASE,
)
from core.errors import FreightStoreError, FreightTransientStoreError
from core.logging_config import get_logger
from core.types import (
    BookingAggregate,
    ChunkFailure,
    DetailSequence,
    LoadResult,
    PhaseResult,
)
from ingest.progress import ProgressTracker
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class LoadSettings:
    """Tuning knobs for the load phases."""

    chunk_size: int
    load_workers: int = 1
    max_retries: int = 0
    retry_backoff_seconds: float = 0.0
    progress_interval: int = 1000

    @classmethod
    def from_config(
        cls,
        config: FreightConfig,
        chunk_size: int | None = None,
        load_workers: int | None = None,
    ) -> "LoadSettings":
        """Build settings from config with optional per-run overrides."""
        return cls(
            chunk_size=chunk_size or config.chunk_size,
            load_workers=load_workers or config.load_workers,
            max_retries=config.max_retries,
            retry_backoff_seconds=config.retry_backoff_seconds,
            progress_interval=config.progress_interval,
        )


@dataclass(frozen=True)
class RecordChunk:
    """Contiguous slice of phase records submitted in one upsert.

    ``first_line`` and ``last_line`` bound the source lines the records
    came from, or stay ``None`` when no line numbers are known.
    """

    index: int
    first_row: int
    records: list[dict[str, Any]]
    first_line: int | None = None
    last_line: int | None = None

    @property
    def last_row(self) -> int:
        return self.first_row + len(self.records) - 1


def split_chunks(
    records: Sequence[dict[str, Any]],
    chunk_size: int,
    line_numbers: Sequence[int] = (),
) -> list[RecordChunk]:
    """Split records into ordered chunks of at most ``chunk_size``.

    Args:
        records: Phase records in load order.
        chunk_size: Maximum records per chunk.
        line_numbers: Source line of each record, parallel to ``records``.
            Zero marks an unknown line.
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    chunks: list[RecordChunk] = []
    for index, start in enumerate(range(0, len(records), chunk_size)):
        lines = [line for line in line_numbers[start : start + chunk_size] if line > 0]
        chunks.append(
            RecordChunk(
                index=index,
                first_row=start,
                records=list(records[start : start + chunk_size]),
                first_line=min(lines) if lines else None,
                last_line=max(lines) if lines else None,
            )
        )
    return chunks


class BatchLoader:
    """Two-phase loader writing through an injected record store."""

    def __init__(
        self,
        store: RecordStore,
        settings: LoadSettings,
        source: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._settings = settings
        self._source = source
        self._sleep = sleep

    def load(
        self,
        bookings: Mapping[str, BookingAggregate] | Iterable[BookingAggregate],
        details: Iterable[DetailSequence],
    ) -> LoadResult:
        """Upsert all bookings, then all details.

        Args:
            bookings: Unique bookings, as a mapping or an iterable.
            details: Detail rows whose parents are among ``bookings``
                or already stored.

        Returns:
            Per-phase commit counts and the first failure of each phase.
        """
        booking_values = list(bookings.values() if isinstance(bookings, Mapping) else bookings)
        detail_values = list(details)
        booking_records = [booking.to_record() for booking in booking_values]
        detail_records = [detail.to_record() for detail in detail_values]
        booking_phase = self._run_phase(
            BOOKINGS_PHASE,
            BOOKINGS_COLLECTION,
            BOOKING_CONFLICT_KEYS,
            booking_records,
            [booking.line_number for booking in booking_values],
        )
        if not booking_phase.succeeded:
            detail_chunks = len(split_chunks(detail_records, self._settings.chunk_size))
            _LOGGER.warning(
                "phase_skipped",
                source=self._source,
                phase=DETAILS_PHASE,
                reason="bookings phase did not complete",
                pending_chunks=detail_chunks,
            )
            detail_phase = PhaseResult(
                phase=DETAILS_PHASE,
                total_chunks=detail_chunks,
                committed_chunks=0,
                committed_records=0,
                skipped=True,
            )
            return LoadResult(booking_phase=booking_phase, detail_phase=detail_phase)
        detail_phase = self._run_phase(
            DETAILS_PHASE,
            DETAILS_COLLECTION,
            DETAIL_CONFLICT_KEYS,
            detail_records,
            [detail.line_number for detail in detail_values],
        )
        return LoadResult(booking_phase=booking_phase, detail_phase=detail_phase)

    def _run_phase(
        self,
        phase: str,
        collection: str,
        conflict_keys: tuple[str, ...],
        records: list[dict[str, Any]],
        line_numbers: Sequence[int] = (),
    ) -> PhaseResult:
        chunks = split_chunks(records, self._settings.chunk_size, line_numbers)
        workers = max(1, self._settings.load_workers)
        progress = ProgressTracker(
            event=f"{phase}_load_progress",
            interval=self._settings.progress_interval,
            total=len(records),
            source=self._source,
        )
        committed_chunks = 0
        committed_records = 0
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"load-{phase}") as pool:
            for window_start in range(0, len(chunks), workers):
                window = chunks[window_start : window_start + workers]
                futures = [
                    pool.submit(self._submit_chunk, phase, collection, conflict_keys, chunk)
                    for chunk in window
                ]
                failure: ChunkFailure | None = None
                for chunk, future in zip(window, futures):
                    try:
                        future.result()
                    except FreightStoreError as error:
                        failure = failure or _chunk_failure(phase, chunk, error)
                        continue
                    committed_chunks += 1
                    committed_records += len(chunk.records)
                    progress.advance(len(chunk.records))
                if failure is not None:
                    _LOGGER.error(
                        "phase_aborted",
                        source=self._source,
                        phase=phase,
                        chunk_index=failure.chunk_index,
                        first_row=failure.first_row,
                        last_row=failure.last_row,
                        first_line=failure.first_line,
                        last_line=failure.last_line,
                        committed_chunks=committed_chunks,
                        total_chunks=len(chunks),
                        error=failure.message,
                    )
                    return PhaseResult(
                        phase=phase,
                        total_chunks=len(chunks),
                        committed_chunks=committed_chunks,
                        committed_records=committed_records,
                        failure=failure,
                    )
        _LOGGER.info(
            "phase_completed",
            source=self._source,
            phase=phase,
            committed_chunks=committed_chunks,
            committed_records=committed_records,
        )
        return PhaseResult(
            phase=phase,
            total_chunks=len(chunks),
            committed_chunks=committed_chunks,
            committed_records=committed_records,
        )

    def _submit_chunk(
        self,
        phase: str,
        collection: str,
        conflict_keys: tuple[str, ...],
        chunk: RecordChunk,
    ) -> None:
        """Upsert one chunk, retrying transient failures with backoff."""
        max_retries = self._settings.max_retries
        for attempt in range(max_retries + 1):
            try:
                self._store.upsert(collection, chunk.records, conflict_keys)
            except FreightTransientStoreError as error:
                if attempt >= max_retries:
                    raise
                delay = self._settings.retry_backoff_seconds * (2**attempt)
                _LOGGER.warning(
                    "chunk_retry_scheduled",
                    source=self._source,
                    phase=phase,
                    chunk_index=chunk.index,
                    attempt=attempt + 1,
                    delay_seconds=delay,
                    error=str(error),
                )
                self._sleep(delay)
                continue
            _LOGGER.debug(
                "chunk_committed",
                source=self._source,
                phase=phase,
                chunk_index=chunk.index,
                records=len(chunk.records),
            )
            return


def _chunk_failure(phase: str, chunk: RecordChunk, error: FreightStoreError) -> ChunkFailure:
    return ChunkFailure(
        phase=phase,
        chunk_index=chunk.index,
        first_row=chunk.first_row,
        last_row=chunk.last_row,
        message=str(error),
        first_line=chunk.first_line,
        last_line=chunk.last_line,
    )
