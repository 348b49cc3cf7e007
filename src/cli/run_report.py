"""Plain-text rendering of run reports and store status.

Output is ``key=value`` lines so summaries stay easy to grep.
"""

from __future__ import annotations

from core.types import RunReport
from store.booking_sdk import StoreStatus


def render_run_report(report: RunReport, max_errors: int) -> list[str]:
    """Render the terminal summary of an ingest run."""
    lines = [
        f"files_total={len(report.files)}",
        f"files_succeeded={report.files_succeeded}",
        f"files_failed={report.files_failed}",
        f"rows_read={report.rows_read}",
        f"rows_rejected={report.rows_rejected}",
        f"bookings_created={report.inserted_bookings}/{report.bookings_built}",
        f"details_created={report.inserted_details}/{report.details_built}",
        f"booking_chunks_committed={report.booking_chunks_committed}",
        f"detail_chunks_committed={report.detail_chunks_committed}",
        f"elapsed_seconds={report.elapsed_seconds:.1f}",
    ]
    for file_report in report.files:
        status = "ok" if file_report.succeeded else "failed"
        lines.append(
            f"file\t{status}\t{file_report.source}\t"
            f"rows={file_report.rows_read}\trejected={file_report.rows_rejected}\t"
            f"bookings={file_report.inserted_bookings}\tdetails={file_report.inserted_details}"
            + ("\ttruncated" if file_report.truncated else "")
        )
    for message in report.first_errors(max_errors):
        lines.append(f"error\t{message}")
    return lines


def render_store_status(status: StoreStatus) -> list[str]:
    """Render the store check summary."""
    return [
        f"schema_version={status.schema_version}",
        f"latest_schema_version={status.latest_schema_version}",
        f"bookings={'-' if status.bookings is None else status.bookings}",
        f"detail_sequences={'-' if status.detail_sequences is None else status.detail_sequences}",
    ]
