"""sensorstore - write-back storage for sensor readings, room settings and trigger history."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("sensorstore")
except PackageNotFoundError:
    __version__ = "0+local"
from sensorstore._sanitize import sanitize_id
from sensorstore.config import StoreConfig
from sensorstore.exceptions import SensorStoreError, StorageWriteError, StoreConfigError
from sensorstore.flusher import PeriodicFlusher
from sensorstore.models import RoomSettings, TriggerEvent, TriggerKind
from sensorstore.readings import ReadingsCache
from sensorstore.settings import SettingsStore
from sensorstore.store import SensorStore
from sensorstore.triggers import TriggerLog

__all__ = [
    "__version__",
    "PeriodicFlusher",
    "ReadingsCache",
    "RoomSettings",
    "SensorStore",
    "SensorStoreError",
    "SettingsStore",
    "StorageWriteError",
    "StoreConfig",
    "StoreConfigError",
    "TriggerEvent",
    "TriggerKind",
    "TriggerLog",
    "sanitize_id",
]
