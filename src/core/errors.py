"""Freight exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class FreightError(Exception):
    """Base exception for all Freight failures."""


class FreightConfigError(FreightError):
    """Raised for invalid or missing runtime configuration."""


class FreightIngestError(FreightError):
    """Raised when a source cannot be listed or read."""


class FreightStoreError(FreightError):
    """Raised for storage write and schema failures."""


class FreightTransientStoreError(FreightStoreError):
    """Raised for storage failures that may succeed on retry."""


class FreightDependencyError(FreightError):
    """Raised when an optional runtime dependency is missing."""
