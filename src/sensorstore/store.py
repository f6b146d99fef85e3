"""Wiring of the store components for one process."""

from __future__ import annotations

import logging
from typing import Any

from sensorstore.config import StoreConfig
from sensorstore.exceptions import StoreConfigError
from sensorstore.flusher import PeriodicFlusher
from sensorstore.readings import ReadingsCache
from sensorstore.settings import SettingsStore
from sensorstore.triggers import TriggerLog

_logger = logging.getLogger(__name__)


class SensorStore:
    """Owns the readings cache, settings store, trigger log and flusher.

    Constructed once at process start and handed to the request layer.

    Usage::

        with SensorStore(StoreConfig.from_env()) as store:
            store.readings.put("kitchen", '{"temp": "21.5"}')
            store.triggers.record("kitchen", "high", "http://relay/on")
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self.triggers = TriggerLog(
            self._config.triggers_path,
            max_events=self._config.max_trigger_events,
        )
        self.readings = ReadingsCache(self._config.readings_path, trigger_log=self.triggers)
        self.settings = SettingsStore(self._config.settings_path)
        self._flusher = PeriodicFlusher(self.readings.flush, interval=self._config.flush_interval)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._flusher.is_running

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Prepare the data directory, restore trigger history, start flushing."""
        if self.is_open:
            return
        if not self._config.ensure_data_dir():
            raise StoreConfigError(f"Data directory {self._config.data_dir} is not usable")
        restored = self.triggers.load_from_disk()
        self._flusher.start(self._config.flush_interval)
        _logger.info(
            "Sensor store open data_dir=%s restored_triggers=%d flush_interval=%ss",
            self._config.data_dir,
            restored,
            self._config.flush_interval,
        )

    def close(self) -> None:
        """Stop the background flusher; this runs a final flush."""
        if not self.is_open:
            return
        self._flusher.stop()
        _logger.info("Sensor store closed")

    def flush(self) -> bool:
        """Flush readings and drain the trigger log now."""
        return self.readings.flush()

    def __enter__(self) -> SensorStore:
        self.open()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
