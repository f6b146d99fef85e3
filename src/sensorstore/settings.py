"""Per-room settings persisted as one JSON document.

Every mutation re-reads the whole file, edits one room and atomically
rewrites the file, so the document on disk is always a complete snapshot.
Nothing is cached between calls.
"""

from __future__ import annotations

import json
import logging
import math
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sensorstore._durable import durable_write, read_text
from sensorstore._redact import redact_url
from sensorstore._sanitize import sanitize_id
from sensorstore.exceptions import StorageWriteError
from sensorstore.models import RoomSettings, TriggerKind

_logger = logging.getLogger(__name__)

_EMPTY_DOCUMENT = "{}"


class SettingsStore:
    """Load-modify-rewrite store of :class:`RoomSettings`, keyed by sanitized room.

    Mutations are serialized by one lock so concurrent updates to the same
    room cannot overwrite each other with a stale read.  Reads take no lock;
    the atomic rewrite guarantees they see a whole document.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)
        self._write_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, RoomSettings]:
        text = read_text(self._path)
        if text is None or not text.strip():
            return {}
        try:
            document = json.loads(text)
        except ValueError:
            _logger.warning("Settings file %s is not valid JSON; treating it as empty", self._path)
            return {}
        if not isinstance(document, dict):
            _logger.warning("Settings file %s does not hold a JSON object; treating it as empty", self._path)
            return {}

        rooms: dict[str, RoomSettings] = {}
        for room, record in document.items():
            try:
                rooms[room] = RoomSettings.from_record(room, record)
            except ValidationError:
                _logger.warning("Skipping malformed settings entry for room %r", room)
        return rooms

    def _save(self, rooms: dict[str, RoomSettings]) -> bool:
        document = {room: settings.to_record() for room, settings in rooms.items()}
        try:
            durable_write(self._path, json.dumps(document, indent=2, sort_keys=True, allow_nan=False))
        except StorageWriteError:
            _logger.warning("Settings write to %s failed", self._path, exc_info=True)
            return False
        return True

    def _update(self, room: str, **changes: Any) -> bool:
        key = sanitize_id(room)
        with self._write_lock:
            rooms = self._load()
            current = rooms.get(key) or RoomSettings(room=key)
            rooms[key] = current.model_copy(update=changes)
            return self._save(rooms)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def get(self, room: str) -> RoomSettings | None:
        return self._load().get(sanitize_id(room))

    def get_all(self) -> str:
        """Return the settings document exactly as persisted (``"{}"`` if absent)."""
        text = read_text(self._path)
        if text is None or not text.strip():
            return _EMPTY_DOCUMENT
        return text

    def set_desired(self, room: str, value: float | None) -> bool:
        """Set the room's desired value, keeping its trigger URLs."""
        if value is not None and not math.isfinite(value):
            _logger.warning("Rejecting non-finite desired value %r for room %s", value, sanitize_id(room))
            return False
        ok = self._update(room, desired=None if value is None else float(value))
        _logger.debug("set_desired room=%s value=%s ok=%s", sanitize_id(room), value, ok)
        return ok

    def set_trigger(self, room: str, kind: TriggerKind | str, url: str) -> bool:
        """Set one of the room's trigger URLs; an empty string unsets it."""
        field_name = TriggerKind(kind).value
        ok = self._update(room, **{field_name: url})
        _logger.debug(
            "set_trigger room=%s kind=%s url=%s ok=%s",
            sanitize_id(room),
            field_name,
            redact_url(url),
            ok,
        )
        return ok

    def delete(self, room: str) -> bool:
        """Remove the room's settings.  Deleting an absent room succeeds."""
        key = sanitize_id(room)
        with self._write_lock:
            rooms = self._load()
            if rooms.pop(key, None) is None:
                return True
            ok = self._save(rooms)
        _logger.debug("Deleted settings room=%s ok=%s", key, ok)
        return ok

    def get_all_trigger_urls(self, kind: TriggerKind | str) -> dict[str, str]:
        """Map room -> URL for every room with a non-empty trigger of *kind*."""
        trigger_kind = TriggerKind(kind)
        return {
            room: settings.url_for(trigger_kind)
            for room, settings in self._load().items()
            if settings.url_for(trigger_kind)
        }
