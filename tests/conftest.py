"""Pytest configuration for repository test runs."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterator

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def clean_freight_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Isolate every test from Freight variables in the shell or loaded from dotenv."""
    for name in _freight_variables():
        monkeypatch.delenv(name)
    yield
    for name in _freight_variables():
        os.environ.pop(name, None)


def _freight_variables() -> list[str]:
    return [
        name for name in os.environ if name.startswith("FREIGHT_") or name == "SUPABASE_DB_URL"
    ]
