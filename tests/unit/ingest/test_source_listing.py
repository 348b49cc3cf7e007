"""Unit tests for source listing and line streaming."""

from __future__ import annotations

import pytest

from core.errors import FreightConfigError, FreightIngestError
from ingest.source_listing import list_source_files, open_source_lines
from tests.store_doubles import build_test_config

_SUFFIXES = (".csv", ".jsonl")


def test_list_source_files_returns_single_file(tmp_path) -> None:
    """A file path should be returned as-is regardless of suffix filter."""
    source = tmp_path / "bookings.tsv"
    source.write_text("A\n", encoding="utf-8")

    files = list_source_files(str(source), _SUFFIXES, build_test_config())

    assert files == [str(source)]


def test_list_source_files_filters_and_sorts_directory(tmp_path) -> None:
    """Only matching files directly under the directory are listed, sorted."""
    (tmp_path / "b.csv").write_text("x\n", encoding="utf-8")
    (tmp_path / "a.JSONL").write_text("{}\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("x\n", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "c.csv").write_text("x\n", encoding="utf-8")

    files = list_source_files(str(tmp_path), _SUFFIXES, build_test_config())

    assert files == [str(tmp_path / "a.JSONL"), str(tmp_path / "b.csv")]


def test_list_source_files_rejects_missing_path(tmp_path) -> None:
    """A missing source path is a configuration error."""
    with pytest.raises(FreightConfigError, match="does not exist"):
        list_source_files(str(tmp_path / "missing"), _SUFFIXES, build_test_config())


def test_list_source_files_rejects_empty_directory(tmp_path) -> None:
    """A directory without matching files is a configuration error."""
    (tmp_path / "notes.txt").write_text("x\n", encoding="utf-8")

    with pytest.raises(FreightConfigError, match="No source files"):
        list_source_files(str(tmp_path), _SUFFIXES, build_test_config())


def test_open_source_lines_strips_bom_and_keeps_line_endings(tmp_path) -> None:
    """Local files should decode UTF-8 with BOM and stream lines lazily."""
    source = tmp_path / "bom.csv"
    source.write_bytes("\ufeffJOB_REFERENCE_FAKE\r\nA\r\n".encode("utf-8"))

    with open_source_lines(str(source), build_test_config()) as lines:
        collected = list(lines)

    assert collected == ["JOB_REFERENCE_FAKE\r\n", "A\r\n"]


def test_open_source_lines_reports_invalid_utf8(tmp_path) -> None:
    """Undecodable bytes should surface as an ingest error."""
    source = tmp_path / "latin.csv"
    source.write_bytes(b"JOB_REFERENCE_FAKE\nCaf\xe9\n")

    with pytest.raises(FreightIngestError, match="not valid UTF-8"):
        with open_source_lines(str(source), build_test_config()) as lines:
            list(lines)


def test_open_source_lines_rejects_unreadable_path(tmp_path) -> None:
    """Opening a missing file should raise an ingest error."""
    with pytest.raises(FreightIngestError, match="Failed to open source"):
        with open_source_lines(str(tmp_path / "gone.csv"), build_test_config()):
            pass


class _FakeBody:
    def __init__(self, payload: bytes) -> None:
        self._payload = payload
        self.closed = False

    def iter_lines(self, keepends: bool = False):
        return iter(self._payload.splitlines(keepends=keepends))

    def close(self) -> None:
        self.closed = True


class _FakePaginator:
    def __init__(self, keys: list[str]) -> None:
        self._keys = keys
        self.calls: list[dict] = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        return [{"Contents": [{"Key": key} for key in self._keys]}, {}]


class _FakeS3Client:
    class exceptions:
        class NoSuchKey(Exception):
            pass

    def __init__(self, keys: list[str], body: _FakeBody | None = None) -> None:
        self.paginator = _FakePaginator(keys)
        self.body = body

    def get_paginator(self, name: str) -> _FakePaginator:
        assert name == "list_objects_v2"
        return self.paginator

    def get_object(self, Bucket: str, Key: str) -> dict:
        if self.body is None:
            raise self.exceptions.NoSuchKey(Key)
        return {"Body": self.body}


def test_list_source_files_lists_s3_prefix(monkeypatch) -> None:
    """S3 prefixes should list matching keys as sorted URIs."""
    client = _FakeS3Client(["exports/b.csv", "exports/a.jsonl", "exports/readme.md"])
    monkeypatch.setattr("ingest.source_listing._create_s3_client", lambda config: client)

    files = list_source_files("s3://bucket/exports/", _SUFFIXES, build_test_config())

    assert files == ["s3://bucket/exports/a.jsonl", "s3://bucket/exports/b.csv"]
    assert client.paginator.calls == [{"Bucket": "bucket", "Prefix": "exports/"}]


def test_open_source_lines_streams_s3_object(monkeypatch) -> None:
    """S3 bodies should be decoded line by line and closed afterwards."""
    body = _FakeBody("\ufeffK,V\na,é\n".encode("utf-8"))
    client = _FakeS3Client([], body)
    monkeypatch.setattr("ingest.source_listing._create_s3_client", lambda config: client)

    with open_source_lines("s3://bucket/exports/a.csv", build_test_config()) as lines:
        collected = list(lines)

    assert collected == ["K,V\n", "a,é\n"]
    assert body.closed


def test_open_source_lines_reports_missing_s3_object(monkeypatch) -> None:
    """A missing S3 key should raise an ingest error."""
    monkeypatch.setattr(
        "ingest.source_listing._create_s3_client", lambda config: _FakeS3Client([])
    )

    with pytest.raises(FreightIngestError, match="does not exist"):
        with open_source_lines("s3://bucket/exports/a.csv", build_test_config()):
            pass
