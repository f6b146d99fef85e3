"""Atomic file replacement shared by every persisted artifact.

Content is written to a temporary file in the target's directory, synced,
and renamed over the canonical path.  Readers never observe a partially
written file: they see either the previous content or the new one.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path

from sensorstore.exceptions import StorageWriteError

_logger = logging.getLogger(__name__)


def durable_write(path: Path | str, content: str) -> None:
    """Atomically replace *path* with *content*.

    Raises
    ------
    StorageWriteError
        If the directory cannot be created or the temporary file cannot be
        written or renamed.  The canonical file is left as it was.
    """
    target = Path(path)
    tmp_name: str | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
        )
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, target)
    except OSError as exc:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        raise StorageWriteError(f"Failed to write {target}: {exc}", path=target) from exc
    _logger.debug("Replaced %s (%d chars)", target, len(content))


def read_text(path: Path | str, *, errors: str = "strict") -> str | None:
    """Return the file's content, or ``None`` if it is missing or unreadable.

    *errors* is passed to the UTF-8 decoder; line-oriented callers use
    ``"replace"`` so one bad byte spoils a line, not the whole file.
    """
    try:
        return Path(path).read_text(encoding="utf-8", errors=errors)
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError):
        _logger.warning("Could not read %s; treating it as empty", path, exc_info=True)
        return None
