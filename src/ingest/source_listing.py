"""Source enumeration and line streaming.

This module lists source files under a local directory or an S3
prefix and opens each one as a lazy stream of text lines.
"""

from __future__ import annotations

import codecs
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator

from core.config import FreightConfig
from core.errors import FreightConfigError, FreightDependencyError, FreightIngestError
from core.s3_uri import S3Location, is_s3_uri, parse_s3_uri


def list_source_files(
    source: str,
    suffixes: Iterable[str],
    config: FreightConfig,
) -> list[str]:
    """List source files matching the suffix filter.

    Args:
        source: Local file, local directory, or ``s3://bucket/prefix``.
        suffixes: Accepted lowercase file suffixes.
        config: Runtime configuration for S3 session defaults.

    Returns:
        Sorted source paths or URIs.

    Raises:
        FreightConfigError: If the source is missing or holds no matching files.
    """
    accepted = tuple(suffix.lower() for suffix in suffixes)
    if is_s3_uri(source):
        location = parse_s3_uri(source)
        keys = _list_s3_keys(_create_s3_client(config), location, accepted)
        files = [f"s3://{location.bucket}/{key}" for key in keys]
    else:
        files = _list_local_files(Path(source).expanduser(), accepted)
    if not files:
        raise FreightConfigError(
            f"No source files found under {source}. "
            f"Supported suffixes: {', '.join(accepted)}."
        )
    return files


@contextmanager
def open_source_lines(source: str, config: FreightConfig) -> Iterator[Iterator[str]]:
    """Open a source as a lazy line stream.

    Args:
        source: Local path or ``s3://bucket/key`` URI.
        config: Runtime configuration for S3 session defaults.

    Yields:
        Iterator over decoded text lines.

    Raises:
        FreightIngestError: If the source cannot be opened.
    """
    if is_s3_uri(source):
        location = parse_s3_uri(source)
        body = _open_s3_body(_create_s3_client(config), location)
        try:
            yield _decode_lines(body.iter_lines(keepends=True))
        finally:
            body.close()
        return
    try:
        handle = open(source, encoding="utf-8-sig", newline="")
    except OSError as error:
        raise FreightIngestError(
            f"Failed to open source {source}: {error.strerror}. "
            "Check the path and file permissions."
        ) from error
    with handle:
        yield _checked_lines(handle, source)


def _list_local_files(source_path: Path, suffixes: tuple[str, ...]) -> list[str]:
    if not source_path.exists():
        raise FreightConfigError(
            f"Source path {source_path} does not exist. "
            "Provide an existing file or directory, or set FREIGHT_DATA_DIR."
        )
    if source_path.is_file():
        return [str(source_path)]
    return [
        str(file_path)
        for file_path in sorted(source_path.iterdir())
        if file_path.is_file() and file_path.suffix.lower() in suffixes
    ]


def _checked_lines(handle: Any, source: str) -> Iterator[str]:
    """Yield lines, converting decode failures into ingest errors."""
    try:
        yield from handle
    except UnicodeDecodeError as error:
        raise FreightIngestError(
            f"Source {source} is not valid UTF-8 near byte {error.start}. "
            "Re-export the file as UTF-8 and retry."
        ) from error


def _decode_lines(raw_lines: Iterable[bytes]) -> Iterator[str]:
    decoder = codecs.getincrementaldecoder("utf-8-sig")()
    for raw_line in raw_lines:
        yield decoder.decode(raw_line)


def _create_s3_client(config: FreightConfig) -> Any:
    """Create a boto3 S3 client.

    Raises:
        FreightDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise FreightDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install boto3 to ingest from s3:// sources."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def _list_s3_keys(s3_client: Any, location: S3Location, suffixes: tuple[str, ...]) -> list[str]:
    paginator = s3_client.get_paginator("list_objects_v2")
    pages = paginator.paginate(Bucket=location.bucket, Prefix=location.prefix)
    keys: list[str] = []
    for page in pages:
        for obj in page.get("Contents", []):
            key = obj["Key"]
            if Path(key).suffix.lower() in suffixes:
                keys.append(key)
    return sorted(keys)


def _open_s3_body(s3_client: Any, location: S3Location) -> Any:
    try:
        return s3_client.get_object(Bucket=location.bucket, Key=location.prefix)["Body"]
    except s3_client.exceptions.NoSuchKey as error:
        raise FreightIngestError(
            f"S3 object s3://{location.bucket}/{location.prefix} does not exist."
        ) from error
