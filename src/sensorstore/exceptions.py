"""Custom exception hierarchy for sensorstore."""

from __future__ import annotations

from pathlib import Path


class SensorStoreError(Exception):
    """Base exception for all sensorstore errors."""


class StoreConfigError(SensorStoreError):
    """Invalid or missing configuration."""


class StorageWriteError(SensorStoreError):
    """A persisted file could not be written or moved into place.

    Raised by the durable write primitive only.  Store components catch it
    and report the failure as a ``False`` result, leaving their in-memory
    state untouched so the write can be retried.
    """

    def __init__(self, message: str, *, path: Path | str = "") -> None:
        self.path = str(path)
        super().__init__(message)
