"""Integration tests for ingesting booking exports into SQLite."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Mapping, Sequence

from sqlalchemy import select

from core.constants import BOOKINGS_COLLECTION, DETAILS_COLLECTION
from core.errors import FreightStoreError
from core.types import IngestOptions
from store.booking_sdk import FreightClient
from store.schema import bookings_table, detail_sequences_table
from store.sql_store import SqlRecordStore
from tests.fixture_paths import copy_fixture, fixture_path
from tests.store_doubles import build_test_config


class _FailingSqlStore:
    """SQL store wrapper failing one upsert call by number."""

    def __init__(self, store: SqlRecordStore, fail_on_call: int) -> None:
        self._store = store
        self._fail_on_call = fail_on_call
        self.calls = 0

    def upsert(
        self,
        collection: str,
        records: Sequence[Mapping[str, Any]],
        conflict_keys: Sequence[str],
    ) -> None:
        call_number = self.calls
        self.calls += 1
        if call_number == self._fail_on_call:
            raise FreightStoreError("simulated constraint failure")
        self._store.upsert(collection, records, conflict_keys)


def _client(tmp_path) -> FreightClient:
    config = build_test_config(database_url=f"sqlite:///{tmp_path / 'bookings.db'}")
    client = FreightClient(config)
    client.migrate()
    return client


def _store(tmp_path) -> SqlRecordStore:
    return SqlRecordStore.from_config(
        build_test_config(database_url=f"sqlite:///{tmp_path / 'bookings.db'}")
    )


def _snapshot(store: SqlRecordStore) -> tuple[list[tuple], list[tuple]]:
    with store.engine.connect() as connection:
        bookings = connection.execute(
            select(bookings_table.c.job_reference, bookings_table.c.shipcomp_name).order_by(
                bookings_table.c.job_reference
            )
        ).all()
        details = connection.execute(
            select(
                detail_sequences_table.c.job_reference,
                detail_sequences_table.c.job_dtl_sequence,
                detail_sequences_table.c.nb_teu,
                detail_sequences_table.c.haz_flag,
            ).order_by(
                detail_sequences_table.c.job_reference, detail_sequences_table.c.job_dtl_sequence
            )
        ).all()
    return [tuple(row) for row in bookings], [tuple(row) for row in details]


def test_reingesting_same_directory_is_idempotent(tmp_path) -> None:
    """Running the same ingest twice should leave identical rows."""
    source_dir = tmp_path / "exports"
    source_dir.mkdir()
    copy_fixture("bookings/mixed.csv", source_dir, "a.csv")
    copy_fixture("bookings/records.jsonl", source_dir, "b.jsonl")
    client = _client(tmp_path)
    store = _store(tmp_path)
    options = IngestOptions(source=str(source_dir), chunk_size=2)

    first_report = client.ingest(options)
    first_snapshot = _snapshot(store)
    second_report = client.ingest(options)

    assert first_report.files_succeeded == second_report.files_succeeded == 2
    assert _snapshot(store) == first_snapshot
    assert store.count(BOOKINGS_COLLECTION) == 5
    assert store.count(DETAILS_COLLECTION) == 6


def test_header_example_stores_two_bookings_three_details(tmp_path) -> None:
    """The compact export should land as 2 bookings and 3 sequences."""
    client = _client(tmp_path)
    store = _store(tmp_path)

    client.ingest(IngestOptions(source=str(fixture_path("bookings/two_bookings.csv"))))

    bookings, details = _snapshot(store)
    assert [row[0] for row in bookings] == ["A", "B"]
    assert details == [
        ("A", 1, Decimal("10"), True),
        ("A", 2, Decimal("5"), False),
        ("B", 1, Decimal("7"), True),
    ]


def test_rerun_after_partial_failure_converges(tmp_path) -> None:
    """Committed chunks survive a failure and a rerun completes the load."""
    database_url = f"sqlite:///{tmp_path / 'bookings.db'}"
    config = build_test_config(database_url=database_url)
    FreightClient(config).migrate()
    store = SqlRecordStore.from_config(config)
    source = str(fixture_path("bookings/mixed.csv"))
    options = IngestOptions(source=source, chunk_size=1)

    failing = FreightClient(config, store=_FailingSqlStore(store, fail_on_call=4))
    partial = failing.ingest(options)

    assert not partial.files[0].succeeded
    assert store.count(BOOKINGS_COLLECTION) == 3
    assert store.count(DETAILS_COLLECTION) == 1

    FreightClient(config, store=store).ingest(options)

    assert store.count(BOOKINGS_COLLECTION) == 3
    assert store.count(DETAILS_COLLECTION) == 3


def test_directory_run_keeps_first_file_booking(tmp_path) -> None:
    """A booking repeated in a later file of the same run keeps its first attributes."""
    source_dir = tmp_path / "exports"
    source_dir.mkdir()
    header = "JOB_REFERENCE_FAKE,SHIPCOMP_NAME,JOB_DTL_SEQUENCE,NB_TEU\n"
    (source_dir / "a.csv").write_text(header + "A,first,1,3\n", encoding="utf-8")
    (source_dir / "b.csv").write_text(header + "A,second,2,4\nA,second,1,9\n", encoding="utf-8")
    client = _client(tmp_path)
    store = _store(tmp_path)

    report = client.ingest(IngestOptions(source=str(source_dir)))

    bookings, details = _snapshot(store)
    assert report.files_succeeded == 2
    assert bookings == [("A", "first")]
    assert [(row[1], row[2]) for row in details] == [(1, Decimal("3")), (2, Decimal("4"))]
