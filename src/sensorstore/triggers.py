"""Bounded log of fired triggers.

Events are recorded into an in-memory queue capped at ``max_events``
(oldest evicted first) and moved to a newline-delimited JSON file by
:meth:`TriggerLog.drain`, which trims the file to the same cap.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from sensorstore._durable import durable_write, read_text
from sensorstore._redact import redact_url
from sensorstore.exceptions import StorageWriteError
from sensorstore.models import TriggerEvent, TriggerKind, format_timestamp

_logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 100


def _local_now() -> datetime:
    return datetime.now()


def _render_lines(events: list[TriggerEvent]) -> str:
    return "".join(f"{event.to_log_line()}\n" for event in events)


class TriggerLog:
    """Bounded FIFO of :class:`TriggerEvent` with an append-and-trim log file.

    Two locks are used.  ``_lock`` guards the queue and is never held across
    disk I/O.  ``_file_lock`` serializes everything that reads or rewrites
    the log file so a drain and a clear cannot interleave; when both are
    needed, ``_file_lock`` is taken first.
    """

    def __init__(
        self,
        path: Path | str,
        *,
        max_events: int = DEFAULT_MAX_EVENTS,
        clock: Callable[[], datetime] = _local_now,
    ) -> None:
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._path = Path(path)
        self._max_events = max_events
        self._clock = clock
        self._queue: deque[TriggerEvent] = deque()
        # Number of leading queue entries that are already in the log file.
        self._persisted = 0
        self._lock = threading.Lock()
        self._file_lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def max_events(self) -> int:
        return self._max_events

    def _trim_queue(self) -> None:
        while len(self._queue) > self._max_events:
            self._queue.popleft()
            if self._persisted:
                self._persisted -= 1

    def _read_persisted(self) -> list[TriggerEvent]:
        text = read_text(self._path, errors="replace")
        if not text:
            return []
        events: list[TriggerEvent] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                events.append(TriggerEvent.from_log_line(line))
            except ValidationError:
                _logger.warning("Skipping malformed trigger log line %s:%d", self._path, lineno)
        return events

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def record(self, sensor: str, kind: TriggerKind | str, url: str) -> TriggerEvent:
        """Append a new event stamped with the current time.

        Never touches disk; the event becomes durable on the next drain.
        """
        event = TriggerEvent(
            timestamp=format_timestamp(self._clock()),
            sensor=sensor,
            kind=TriggerKind(kind),
            url=url,
        )
        with self._lock:
            self._queue.append(event)
            self._trim_queue()
        _logger.debug(
            "Recorded %s trigger sensor=%s url=%s",
            event.kind.value,
            sensor,
            redact_url(url),
        )
        return event

    def list_all(self) -> list[TriggerEvent]:
        """Persisted events in file order followed by events not yet drained."""
        with self._file_lock:
            persisted = self._read_persisted()
            with self._lock:
                pending = list(self._queue)[self._persisted :]
        return persisted + pending

    def clear(self) -> bool:
        """Truncate the log file and empty the queue together.

        Returns ``False`` (and leaves both untouched) if the file cannot be
        truncated.
        """
        with self._file_lock, self._lock:
            try:
                durable_write(self._path, "")
            except StorageWriteError:
                _logger.warning("Could not truncate trigger log %s", self._path, exc_info=True)
                return False
            self._queue.clear()
            self._persisted = 0
        _logger.debug("Trigger log cleared")
        return True

    def load_from_disk(self) -> int:
        """Seed the queue with the most recent persisted events.

        Intended for process start, before any event is recorded.  Returns
        the number of events restored.
        """
        with self._file_lock:
            restored = self._read_persisted()[-self._max_events :]
            with self._lock:
                self._queue = deque(restored)
                self._persisted = len(restored)
        _logger.debug("Restored %d trigger events from %s", len(restored), self._path)
        return len(restored)

    def drain(self) -> bool:
        """Append queued events to the log file and trim it to ``max_events``.

        On a failed write the drained events go back to the front of the
        queue so the next drain retries them.
        """
        with self._file_lock:
            with self._lock:
                pending = list(self._queue)[self._persisted :]
                if not pending:
                    return True
                self._queue.clear()
                self._persisted = 0

            combined = self._read_persisted() + pending
            retained = combined[-self._max_events :]
            try:
                durable_write(self._path, _render_lines(retained))
            except StorageWriteError:
                _logger.warning(
                    "Trigger log flush to %s failed; requeueing %d events",
                    self._path,
                    len(pending),
                    exc_info=True,
                )
                with self._lock:
                    self._queue.extendleft(reversed(pending))
                    self._trim_queue()
                return False

        _logger.debug(
            "Flushed %d trigger events to %s (%d retained)",
            len(pending),
            self._path,
            len(retained),
        )
        return True
