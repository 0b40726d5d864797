"""Error taxonomy for GridSync.

Validation errors are reported as warnings and never escape a mutation.
Transport and malformed-response errors feed the remote retry policy.
Only configuration errors are raised to the caller, at construction time.
"""

from __future__ import annotations

from typing import Optional


class GridSyncError(Exception):
    """Base class for all GridSync errors."""


class ConfigurationError(GridSyncError):
    """Raised when a table is constructed with an unusable configuration."""


class ViewValidationError(GridSyncError):
    """A view mutation was rejected (bad page size, unknown column, page out of range)."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class TransportError(GridSyncError):
    """Network failure, timeout or non-success status from the remote source."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedResponseError(TransportError):
    """Response body could not be reconciled (rows missing or not a sequence)."""
