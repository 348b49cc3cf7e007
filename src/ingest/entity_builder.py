"""Single-pass construction of bookings and their detail sequences.

Bookings are deduplicated on job reference with first-occurrence-wins:
later rows for the same booking only contribute detail sequences. Keys
loaded by an earlier file of the same run count as already seen.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable

from core.logging_config import get_logger
from core.types import BookingAggregate, BuildResult, DetailSequence, RawRow, RowRejection
from ingest.field_mapping import (
    BOOKING_FIELDS,
    DETAIL_FIELDS,
    JOB_REFERENCE_HEADERS,
    SEQUENCE_HEADERS,
    lookup_raw,
    normalize_fields,
)
from ingest.normalizer import normalize_integer, normalize_string
from ingest.progress import ProgressTracker

_LOGGER = get_logger(__name__)


def build_entities(
    rows: Iterable[RawRow],
    progress: ProgressTracker | None = None,
    known_bookings: AbstractSet[str] = frozenset(),
    known_details: AbstractSet[tuple[str, int]] = frozenset(),
) -> BuildResult:
    """Build unique bookings and related detail rows from a row stream.

    Args:
        rows: Raw rows in source order; consumed exactly once.
        progress: Optional tracker advanced once per row.
        known_bookings: Job references already loaded earlier in the run.
            Their attributes are kept; rows only add detail sequences.
        known_details: Detail keys already loaded earlier in the run.

    Returns:
        Bookings keyed by job reference, details in source order, and
        rejection counts.
    """
    bookings: dict[str, BookingAggregate] = {}
    details: list[DetailSequence] = []
    seen_detail_keys: set[tuple[str, int]] = set()
    repeated_bookings: set[str] = set()
    rejections: list[RowRejection] = []
    duplicate_details = 0
    for row in rows:
        if progress is not None:
            progress.advance()
        job_reference = normalize_string(lookup_raw(row.fields, JOB_REFERENCE_HEADERS))
        if job_reference is None:
            rejections.append(
                RowRejection(line_number=row.line_number, reason="missing job reference")
            )
            continue
        if job_reference in known_bookings:
            if job_reference not in repeated_bookings:
                repeated_bookings.add(job_reference)
                _LOGGER.debug(
                    "known_booking_kept",
                    line_number=row.line_number,
                    job_reference=job_reference,
                )
        elif job_reference not in bookings:
            bookings[job_reference] = BookingAggregate(
                job_reference=job_reference,
                attributes=normalize_fields(BOOKING_FIELDS, row.fields),
                line_number=row.line_number,
            )
        sequence_number = normalize_integer(lookup_raw(row.fields, SEQUENCE_HEADERS))
        if sequence_number is None:
            continue
        detail_key = (job_reference, sequence_number)
        if detail_key in seen_detail_keys or detail_key in known_details:
            duplicate_details += 1
            _LOGGER.debug(
                "duplicate_detail_skipped",
                line_number=row.line_number,
                job_reference=job_reference,
                sequence_number=sequence_number,
            )
            continue
        seen_detail_keys.add(detail_key)
        details.append(
            DetailSequence(
                job_reference=job_reference,
                sequence_number=sequence_number,
                attributes=normalize_fields(DETAIL_FIELDS, row.fields),
                line_number=row.line_number,
            )
        )
    return BuildResult(
        bookings=bookings,
        details=details,
        rejected=len(rejections),
        rejections=rejections,
        duplicate_details=duplicate_details,
        duplicate_bookings=len(repeated_bookings),
    )
