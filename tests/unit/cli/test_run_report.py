"""Unit tests for plain-text run summaries."""

from __future__ import annotations

from cli.run_report import render_run_report, render_store_status
from core.types import FileReport, RunReport
from store.booking_sdk import StoreStatus


def _report() -> RunReport:
    return RunReport(
        files=(
            FileReport(
                source="a.csv",
                rows_read=10,
                rows_rejected=1,
                bookings_built=4,
                details_built=9,
                inserted_bookings=4,
                inserted_details=9,
                booking_chunks_committed=1,
                detail_chunks_committed=2,
                errors=("line 3: missing job reference",),
            ),
            FileReport(source="b.csv", errors=("boom", "second"), succeeded=False),
        ),
        elapsed_seconds=1.5,
    )


def test_render_run_report_prints_totals() -> None:
    """Summary lines should aggregate counts across files."""
    lines = render_run_report(_report(), max_errors=10)

    assert lines[:10] == [
        "files_total=2",
        "files_succeeded=1",
        "files_failed=1",
        "rows_read=10",
        "rows_rejected=1",
        "bookings_created=4/4",
        "details_created=9/9",
        "booking_chunks_committed=1",
        "detail_chunks_committed=2",
        "elapsed_seconds=1.5",
    ]
    assert lines[10].startswith("file\tok\ta.csv\trows=10")
    assert lines[11].startswith("file\tfailed\tb.csv")


def test_render_run_report_caps_errors() -> None:
    """Only the first errors across files should be printed."""
    lines = render_run_report(_report(), max_errors=2)

    errors = [line for line in lines if line.startswith("error\t")]
    assert errors == ["error\ta.csv: line 3: missing job reference", "error\tb.csv: boom"]


def test_render_store_status_marks_missing_counts() -> None:
    """Unmigrated stores should print dashes instead of counts."""
    lines = render_store_status(StoreStatus(0, 2, None, None))

    assert lines == [
        "schema_version=0",
        "latest_schema_version=2",
        "bookings=-",
        "detail_sequences=-",
    ]


def test_render_run_report_marks_truncated_files() -> None:
    """Files cut short by the row limit should say so on their line."""
    report = RunReport(
        files=(FileReport(source="big.jsonl", rows_read=5, truncated=True),),
        elapsed_seconds=0.2,
    )

    lines = render_run_report(report, max_errors=10)

    assert lines[10].endswith("\ttruncated")
