"""Booking export fixtures shared by unit and integration tests."""

from __future__ import annotations

import shutil
from pathlib import Path

FIXTURES_ROOT = Path(__file__).resolve().parent / "fixtures"


def fixture_path(relative_path: str) -> Path:
    """Return the absolute path of a file under tests/fixtures."""
    return FIXTURES_ROOT / relative_path


def copy_fixture(relative_path: str, target_dir: Path, name: str) -> Path:
    """Copy a fixture into a scratch directory under a new file name.

    Args:
        relative_path: Path under the fixtures root.
        target_dir: Existing directory receiving the copy.
        name: File name of the copy; its suffix selects the dialect.

    Returns:
        Path of the copied file.
    """
    target = target_dir / name
    shutil.copyfile(fixture_path(relative_path), target)
    return target
