# src/task_sync/errors.py

"""Exception types shared by the sync core and its request handlers."""

from __future__ import annotations


class SyncError(Exception):
    """Base exception for all task-sync errors."""


class ValidationError(SyncError):
    """The request itself is malformed; rejected before any work is done."""


class RecordError(SyncError):
    """A single task record is malformed."""

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id


class StorageError(SyncError):
    """A single storage operation failed (the store itself is reachable)."""


class StorageUnavailableError(SyncError):
    """The backing store cannot be opened at all."""
