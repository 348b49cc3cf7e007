"""Count-based progress reporting.

This module emits periodic progress events for long-running parse and
load stages. Progress is a logging side effect only.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass
class ProgressTracker:
    """Emit one event each time the running count crosses an interval."""

    event: str
    interval: int
    total: int | None = None
    source: str | None = None
    count: int = 0
    started_at: float = field(default_factory=time.monotonic)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def advance(self, amount: int = 1) -> None:
        """Add ``amount`` processed items and log when an interval is crossed."""
        with self._lock:
            previous = self.count
            self.count += amount
            current = self.count
        if current // self.interval == previous // self.interval:
            return
        elapsed = time.monotonic() - self.started_at
        _LOGGER.info(
            self.event,
            source=self.source,
            count=current,
            total=self.total,
            rate_per_second=_rate(current, elapsed),
            elapsed_seconds=round(elapsed, 2),
        )


def _rate(count: int, elapsed_seconds: float) -> float:
    if elapsed_seconds <= 0:
        return 0.0
    return round(count / elapsed_seconds, 1)
