"""Background thread that periodically makes cached state durable."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

_logger = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL: float = 10.0


class PeriodicFlusher:
    """Call ``flush`` every ``interval`` seconds on a daemon thread.

    :meth:`stop` interrupts the wait, joins the thread and runs one final
    flush, so nothing accumulated before the stop request is left behind.
    Starting a running flusher and stopping a stopped one are no-ops.
    """

    def __init__(
        self,
        flush: Callable[[], bool],
        *,
        interval: float = DEFAULT_FLUSH_INTERVAL,
        logger: logging.Logger | None = None,
    ) -> None:
        self._flush = flush
        self._interval = interval
        self._logger = logger or _logger
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        """Whether the background thread is active."""
        return self._thread is not None

    @property
    def interval(self) -> float:
        return self._interval

    def start(self, interval: float | None = None) -> None:
        """Start the background thread, optionally overriding the interval."""
        with self._state_lock:
            if self._thread is not None:
                return
            if interval is not None:
                self._interval = interval
            if self._interval <= 0:
                raise ValueError("flush interval must be positive")
            # Each run owns its stop event; a restart never resets a stopping thread.
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name="sensorstore-flusher",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
            thread.start()
        self._logger.debug("Flusher started interval=%ss", self._interval)

    def stop(self) -> None:
        """Stop the thread and run a final flush."""
        with self._state_lock:
            thread = self._thread
            stop_event = self._stop_event
            if thread is None or stop_event is None:
                return
            self._thread = None
            self._stop_event = None
            stop_event.set()
        thread.join()
        self._logger.debug("Flusher stopped; running final flush")
        self._run_once()

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval):
            self._run_once()

    def _run_once(self) -> None:
        try:
            ok = self._flush()
        except Exception:
            # Keep the timer alive; the next tick retries.
            self._logger.exception("Periodic flush raised")
            return
        if not ok:
            self._logger.warning("Periodic flush did not complete; will retry on next tick")
