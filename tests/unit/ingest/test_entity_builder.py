"""Unit tests for booking and detail construction."""

from __future__ import annotations

from decimal import Decimal

from core.types import RawRow
from ingest.entity_builder import build_entities
from ingest.progress import ProgressTracker
from ingest.record_reader import RecordReader, SourceDialect
from tests.fixture_paths import fixture_path


def _read_rows(relative_path: str) -> list[RawRow]:
    with open(fixture_path(relative_path), encoding="utf-8") as handle:
        return list(RecordReader(handle, SourceDialect(kind="delimited")).rows())


def test_build_entities_groups_details_under_bookings() -> None:
    """Two job references with three sequences build 2 bookings and 3 details."""
    result = build_entities(_read_rows("bookings/two_bookings.csv"))

    assert list(result.bookings) == ["A", "B"]
    assert [detail.key for detail in result.details] == [("A", 1), ("A", 2), ("B", 1)]
    assert [detail.attributes["nb_teu"] for detail in result.details] == [
        Decimal("10"),
        Decimal("5"),
        Decimal("7"),
    ]
    assert [detail.attributes["haz_flag"] for detail in result.details] == [True, False, True]
    assert result.rejected == 0


def test_build_entities_keeps_first_booking_occurrence() -> None:
    """Later rows of a booking should not overwrite its attributes."""
    result = build_entities(_read_rows("bookings/mixed.csv"))

    booking = result.bookings["J1"]
    assert booking.attributes["shipcomp_code"] == "CMA"
    assert booking.attributes["shipcomp_name"] == "CMA CGM, Marseille"
    assert booking.attributes["job_status"] == 9
    assert list(result.bookings) == ["J1", "J2", "J4"]


def test_build_entities_rejects_missing_job_reference() -> None:
    """Rows without a job reference produce neither entity."""
    result = build_entities(_read_rows("bookings/mixed.csv"))

    assert result.rejected == 1
    assert result.rejections[0].line_number == 4
    assert all(detail.job_reference for detail in result.details)


def test_build_entities_skips_detail_without_sequence() -> None:
    """A booking row with no sequence number still creates the booking."""
    result = build_entities(_read_rows("bookings/mixed.csv"))

    assert "J2" in result.bookings
    assert [detail.key for detail in result.details] == [("J1", 1), ("J1", 2), ("J4", 1)]


def test_build_entities_normalizes_detail_fields() -> None:
    """Detail attributes should carry typed values and defaults."""
    result = build_entities(_read_rows("bookings/mixed.csv"))
    details = {detail.key: detail.attributes for detail in result.details}

    assert details[("J1", 1)]["commodity_description"] == 'Toys "plastic"'
    assert details[("J1", 1)]["net_weight"] == Decimal("12000.5")
    assert details[("J1", 1)]["reef_flag"] is False
    assert details[("J1", 2)]["haz_flag"] is True
    assert details[("J1", 2)]["net_weight"] is None
    assert details[("J4", 1)]["nb_teu"] == Decimal(0)
    assert result.bookings["J4"].attributes["job_status"] is None


def test_build_entities_counts_duplicate_detail_keys() -> None:
    """A repeated composite key keeps the first row only."""
    rows = [
        RawRow(1, {"JOB_REFERENCE_FAKE": "A", "JOB_DTL_SEQUENCE": "1", "NB_TEU": "1"}),
        RawRow(2, {"JOB_REFERENCE_FAKE": "A", "JOB_DTL_SEQUENCE": "1.0", "NB_TEU": "9"}),
    ]

    result = build_entities(rows)

    assert len(result.details) == 1
    assert result.details[0].attributes["nb_teu"] == Decimal("1")
    assert result.duplicate_details == 1


def test_build_entities_advances_progress() -> None:
    """The tracker should count every consumed row."""
    tracker = ProgressTracker(event="rows_parsed", interval=100)

    build_entities(_read_rows("bookings/mixed.csv"), tracker)

    assert tracker.count == 5


def test_build_entities_records_source_lines() -> None:
    """Entities should remember the line they were built from."""
    result = build_entities(_read_rows("bookings/two_bookings.csv"))

    assert [booking.line_number for booking in result.bookings.values()] == [2, 4]
    assert [detail.line_number for detail in result.details] == [2, 3, 4]


def test_build_entities_skips_keys_loaded_earlier_in_run() -> None:
    """Known bookings are not rebuilt and known detail keys are not repeated."""
    rows = [
        RawRow(2, {"JOB_REFERENCE_FAKE": "A", "SHIPCOMP_NAME": "second", "JOB_DTL_SEQUENCE": "1"}),
        RawRow(3, {"JOB_REFERENCE_FAKE": "A", "SHIPCOMP_NAME": "second", "JOB_DTL_SEQUENCE": "2"}),
        RawRow(4, {"JOB_REFERENCE_FAKE": "B", "SHIPCOMP_NAME": "new", "JOB_DTL_SEQUENCE": "1"}),
    ]

    result = build_entities(rows, known_bookings={"A"}, known_details={("A", 1)})

    assert list(result.bookings) == ["B"]
    assert [detail.key for detail in result.details] == [("A", 2), ("B", 1)]
    assert (result.duplicate_bookings, result.duplicate_details) == (1, 1)
