"""Helpers for safe debug logging.

Trigger callback URLs frequently embed device credentials, either as
``user:password@`` user-info or as query parameters (``?auth_key=...``).
This module masks those parts before a URL is written to a log.
"""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def redact_url(url: str, *, max_length: int = 256) -> str:
    """Return *url* with user-info and query values replaced by ``<redacted>``."""
    if not url:
        return url
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<unparseable-url>"

    netloc = parts.netloc
    if "@" in netloc:
        netloc = "<redacted>@" + netloc.rsplit("@", 1)[1]

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        query = urlencode([(key, "<redacted>") for key, _ in pairs], safe="<>")

    redacted = urlunsplit((parts.scheme, netloc, parts.path, query, parts.fragment))
    if len(redacted) > max_length:
        return f"{redacted[:max_length]}…<truncated>"
    return redacted
