"""Normalization of external identifiers into storage keys."""

from __future__ import annotations

import re

#: Key used when nothing survives sanitization.
UNKNOWN_ID = "unknown"

_DISALLOWED = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_id(value: str) -> str:
    """Reduce *value* to ``[A-Za-z0-9_-]`` characters.

    Every other character is dropped.  Returns ``"unknown"`` when the
    result would be empty, so the function is total and the output is
    always safe to use as a file or JSON key.
    """
    cleaned = _DISALLOWED.sub("", value)
    return cleaned or UNKNOWN_ID
