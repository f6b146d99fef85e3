"""Write-back cache for the latest reading of every sensor.

Writes land in memory and become durable on the next :meth:`ReadingsCache.flush`,
which merges them into a single consolidated JSON file.  Reads prefer memory
and fall back to the file for keys written before the current process
generation (e.g. right after a restart).

The file holds every payload verbatim as the value of its sensor's member.
Payload text that is not strict JSON is stored as a JSON string instead.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from sensorstore._durable import durable_write, read_text
from sensorstore._sanitize import sanitize_id
from sensorstore.exceptions import StorageWriteError

if TYPE_CHECKING:
    from sensorstore.triggers import TriggerLog

_logger = logging.getLogger(__name__)

_WHITESPACE = " \t\n\r"


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON")


# NaN / Infinity are not JSON; never let them into or out of the file.
_DECODER = json.JSONDecoder(parse_constant=_reject_constant)


def _is_strict_json(text: str) -> bool:
    try:
        _DECODER.decode(text)
    except ValueError:
        return False
    return True


def _embed(payload: str) -> str:
    """Member text for *payload*: the payload itself, or a JSON string of it."""
    if _is_strict_json(payload):
        return payload.strip(_WHITESPACE)
    return json.dumps(payload, ensure_ascii=False)


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _raw_members(text: str) -> dict[str, str]:
    """Map each top-level member of a JSON object to its value's source text.

    Raises ``ValueError`` unless *text* is one strict JSON object.
    """
    if not isinstance(_DECODER.decode(text), dict):
        raise ValueError("not a JSON object")

    members: dict[str, str] = {}
    pos = _skip_ws(text, 0) + 1
    while True:
        pos = _skip_ws(text, pos)
        if text[pos] == "}":
            return members
        key, pos = _DECODER.raw_decode(text, pos)
        pos = _skip_ws(text, pos) + 1  # ':'
        start = _skip_ws(text, pos)
        _, pos = _DECODER.raw_decode(text, start)
        members[key] = text[start:pos]
        pos = _skip_ws(text, pos)
        if text[pos] == ",":
            pos += 1


def _render_document(members: dict[str, str]) -> str:
    body = ",".join(f"{json.dumps(key, ensure_ascii=False)}:{raw}" for key, raw in members.items())
    return "{" + body + "}"


class ReadingsCache:
    """In-memory map of latest reading per sensor, backed by one JSON file.

    Parameters
    ----------
    path : Path or str
        Consolidated readings file.
    trigger_log : TriggerLog or None
        When given, every :meth:`flush` also drains this log to disk.
    """

    def __init__(self, path: Path | str, *, trigger_log: TriggerLog | None = None) -> None:
        self._path = Path(path)
        self._trigger_log = trigger_log
        self._readings: dict[str, str] = {}
        self._lock = threading.Lock()
        # Serializes merge-and-replace cycles; never taken while holding _lock.
        self._flush_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persisted store
    # ------------------------------------------------------------------

    def _load_persisted(self) -> dict[str, str]:
        text = read_text(self._path)
        if text is None or not text.strip():
            return {}
        try:
            return _raw_members(text)
        except ValueError:
            _logger.warning("Readings file %s is not a JSON object; ignoring it", self._path)
            return {}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def put(self, sensor_id: str, payload: str) -> bool:
        """Store *payload* as the latest reading for *sensor_id*.

        The value is durable only after the next flush.
        """
        key = sanitize_id(sensor_id)
        with self._lock:
            self._readings[key] = payload
        _logger.debug("Cached reading sensor=%s (%d chars)", key, len(payload))
        return True

    def get(self, sensor_id: str) -> str | None:
        """Return the latest payload for *sensor_id*, or ``None``.

        Memory wins; on a miss the persisted file is consulted.  A disk hit
        is not copied back into memory.
        """
        key = sanitize_id(sensor_id)
        with self._lock:
            cached = self._readings.get(key)
        if cached is not None:
            return cached
        return self._load_persisted().get(key)

    def list_all(self) -> dict[str, str]:
        """Union of cached and persisted readings; cached values take precedence."""
        merged = self._load_persisted()
        with self._lock:
            merged.update(self._readings)
        return merged

    def flush(self) -> bool:
        """Merge cached readings into the persisted file, then drain the trigger log.

        Values for keys that only exist on disk are preserved.  Returns
        ``True`` only if every write succeeded; on failure the previous file
        stays in place and nothing is dropped from memory.
        """
        with self._flush_lock:
            with self._lock:
                snapshot = dict(self._readings)

            ok = True
            if snapshot:
                combined = self._load_persisted()
                for key, payload in snapshot.items():
                    combined[key] = _embed(payload)
                try:
                    durable_write(self._path, _render_document(combined))
                except StorageWriteError:
                    _logger.warning("Readings flush to %s failed", self._path, exc_info=True)
                    ok = False
                else:
                    _logger.debug("Flushed %d cached readings to %s", len(snapshot), self._path)

        if self._trigger_log is not None and not self._trigger_log.drain():
            ok = False
        return ok
