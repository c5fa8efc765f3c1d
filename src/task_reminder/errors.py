# src/task_reminder/errors.py

"""Error taxonomy shared by the store, the dispatcher and the service layer."""

from __future__ import annotations


class ReminderError(Exception):
    """Base class for all task_reminder errors."""


class ValidationError(ReminderError):
    """Malformed user input: unknown enum value, bad timestamp, out-of-range interval."""


class StorageError(ReminderError):
    """I/O failure in the persistence layer. Never retried by the core."""


class DispatchError(ReminderError):
    """Notification delivery could not be attempted."""


class NoChannelsEnabled(DispatchError):
    def __init__(self, message: str = "No notification methods are enabled") -> None:
        super().__init__(message)
