"""Storage collaborator contract consumed by the batch loader.

The loader only needs an upsert keyed by a declared conflict key.
Failures are raised as ``FreightStoreError``; transient ones as
``FreightTransientStoreError`` so callers can retry them.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence


class RecordStore(Protocol):
    """Upsert-capable persistent store."""

    def upsert(
        self,
        collection: str,
        records: Sequence[Mapping[str, Any]],
        conflict_keys: Sequence[str],
    ) -> None:
        """Insert new records or overwrite existing ones on the conflict key."""
        ...
