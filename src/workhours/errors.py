"""Exception types raised by the aggregation engine."""

from __future__ import annotations


class WorkHoursError(Exception):
    """Base class for all work-hours errors."""


class ConfigurationError(WorkHoursError):
    """Raised when the tracker is missing required wiring or settings."""


class StorageError(WorkHoursError):
    """Raised when the durable store cannot be read or written."""


class InvalidInputError(WorkHoursError):
    """Raised for a malformed input record that should be skipped."""


class CommitLogError(WorkHoursError):
    """Raised when the commit history cannot be read at all."""
