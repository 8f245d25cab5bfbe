"""Exception taxonomy for the connection event log."""
from __future__ import annotations


class ConnLogError(Exception):
    """Base class for every error raised by connlog."""


class ValidationError(ConnLogError, ValueError):
    """A required field was missing or an argument was out of range."""


class StorageError(ConnLogError):
    """The underlying event store failed to complete an operation."""


__all__ = ["ConnLogError", "ValidationError", "StorageError"]
