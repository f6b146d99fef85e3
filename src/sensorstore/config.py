"""Store configuration for sensorstore."""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any

from sensorstore.exceptions import StoreConfigError
from sensorstore.flusher import DEFAULT_FLUSH_INTERVAL
from sensorstore.triggers import DEFAULT_MAX_EVENTS

_logger = logging.getLogger(__name__)


def _env_number(env_key: str, value: str, cast: type[int] | type[float]) -> int | float:
    try:
        return cast(value.strip())
    except ValueError as exc:
        raise StoreConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Store configuration.

    Parameters
    ----------
    data_dir : Path
        Directory holding every persisted file.  Created on demand.
    readings_filename : str
        Consolidated readings file (one JSON object, one member per sensor).
    settings_filename : str
        Room settings file (one JSON object, one member per room).
    triggers_filename : str
        Trigger log (newline-delimited JSON, oldest first).
    flush_interval : float
        Seconds between background flushes.
    max_trigger_events : int
        Cap on trigger events kept in memory and in the trigger log.
    """

    data_dir: Path = Path("data")
    readings_filename: str = "sensor_data.json"
    settings_filename: str = "settings.json"
    triggers_filename: str = "triggers.log"
    flush_interval: float = DEFAULT_FLUSH_INTERVAL
    max_trigger_events: int = DEFAULT_MAX_EVENTS

    def __post_init__(self) -> None:
        if not isinstance(self.data_dir, Path):
            object.__setattr__(self, "data_dir", Path(self.data_dir))
        if self.flush_interval <= 0:
            raise StoreConfigError(f"flush_interval must be positive, got {self.flush_interval}")
        if self.max_trigger_events < 1:
            raise StoreConfigError(f"max_trigger_events must be at least 1, got {self.max_trigger_events}")

    @property
    def readings_path(self) -> Path:
        return self.data_dir / self.readings_filename

    @property
    def settings_path(self) -> Path:
        return self.data_dir / self.settings_filename

    @property
    def triggers_path(self) -> Path:
        return self.data_dir / self.triggers_filename

    def ensure_data_dir(self) -> bool:
        """Create :attr:`data_dir` if needed.  Returns ``False`` if it is unusable."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            _logger.warning("Cannot create data directory %s", self.data_dir, exc_info=True)
            return False
        return True

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from ``SENSORSTORE_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        StoreConfigError
            If a numeric variable cannot be parsed or is out of range.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "SENSORSTORE_DATA_DIR": "data_dir",
            "SENSORSTORE_READINGS_FILE": "readings_filename",
            "SENSORSTORE_SETTINGS_FILE": "settings_filename",
            "SENSORSTORE_TRIGGERS_FILE": "triggers_filename",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        interval_env = env.get("SENSORSTORE_FLUSH_INTERVAL")
        if interval_env is not None and "flush_interval" not in overrides:
            config_kwargs["flush_interval"] = _env_number("SENSORSTORE_FLUSH_INTERVAL", interval_env, float)

        max_env = env.get("SENSORSTORE_MAX_TRIGGER_EVENTS")
        if max_env is not None and "max_trigger_events" not in overrides:
            config_kwargs["max_trigger_events"] = _env_number("SENSORSTORE_MAX_TRIGGER_EVENTS", max_env, int)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
