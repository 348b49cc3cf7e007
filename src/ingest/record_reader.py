"""Source line streams to raw rows.

This module turns a stream of physical lines into ``RawRow`` values for
the two supported dialects: delimited text with a header line, and one
JSON object per line. Malformed lines are recorded and skipped.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Any, Iterable, Iterator

from core.constants import DELIMITED_SUFFIXES, RECORD_SUFFIXES
from core.errors import FreightIngestError
from core.logging_config import get_logger
from core.types import RawRow, RowRejection
from ingest.tokenizer import parse_line

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class SourceDialect:
    """Record layout of a source file.

    Attributes:
        kind: ``delimited`` or ``records``.
        delimiter: Field separator for delimited sources.
    """

    kind: str
    delimiter: str = ","


def dialect_for_source(source: str) -> SourceDialect:
    """Pick the dialect from a source path or key suffix.

    Raises:
        FreightIngestError: If the suffix is not supported.
    """
    suffix = PurePosixPath(source).suffix.lower()
    if suffix in DELIMITED_SUFFIXES:
        return SourceDialect(kind="delimited", delimiter=DELIMITED_SUFFIXES[suffix])
    if suffix in RECORD_SUFFIXES:
        return SourceDialect(kind="records")
    raise FreightIngestError(
        f"Unsupported source '{source}': suffix '{suffix}' has no known dialect. "
        f"Use one of {sorted([*DELIMITED_SUFFIXES, *RECORD_SUFFIXES])}."
    )


class RecordReader:
    """Stateful reader that yields rows and records rejected lines."""

    def __init__(self, lines: Iterable[str], dialect: SourceDialect, source: str = "") -> None:
        self._lines = lines
        self._dialect = dialect
        self._source = source
        self.rows_read = 0
        self.rejections: list[RowRejection] = []

    def rows(self) -> Iterator[RawRow]:
        """Yield accepted rows lazily in source order."""
        if self._dialect.kind == "records":
            return self._record_rows()
        return self._delimited_rows()

    def _delimited_rows(self) -> Iterator[RawRow]:
        headers: list[str] | None = None
        for line_number, line in enumerate(self._lines, 1):
            values = parse_line(line, delimiter=self._dialect.delimiter)
            if not values:
                continue
            if headers is None:
                headers = _clean_headers(values)
                _LOGGER.debug("header_parsed", source=self._source, columns=len(headers))
                continue
            self.rows_read += 1
            if len(values) != len(headers):
                self._reject(
                    line_number,
                    f"expected {len(headers)} columns, found {len(values)}",
                )
                continue
            yield RawRow(line_number=line_number, fields=dict(zip(headers, values)))

    def _record_rows(self) -> Iterator[RawRow]:
        for line_number, line in enumerate(self._lines, 1):
            if not line.strip():
                continue
            self.rows_read += 1
            try:
                payload = json.loads(line)
            except json.JSONDecodeError as error:
                self._reject(line_number, f"invalid JSON: {error.msg}")
                continue
            if not isinstance(payload, dict):
                self._reject(line_number, "expected a JSON object")
                continue
            fields = {str(key): _render_value(value) for key, value in payload.items()}
            yield RawRow(line_number=line_number, fields=fields)

    def _reject(self, line_number: int, reason: str) -> None:
        self.rejections.append(RowRejection(line_number=line_number, reason=reason))
        _LOGGER.warning(
            "row_rejected", source=self._source, line_number=line_number, reason=reason
        )


def _clean_headers(values: list[str]) -> list[str]:
    """Trim header names and drop a leading byte order mark."""
    headers = [value.strip() for value in values]
    headers[0] = headers[0].lstrip("\ufeff")
    return headers


def _render_value(value: Any) -> str:
    """Render a JSON scalar the way it would appear in a delimited file."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    return json.dumps(value) if isinstance(value, (dict, list)) else str(value)
