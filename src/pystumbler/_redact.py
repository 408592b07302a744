"""Helpers for safe debug logging.

Upload bodies carry precise locations and nearby network identifiers,
and the request URL may carry the API key.  This module redacts such
fields before they are emitted in DEBUG logs.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_MASK = "<redacted>"

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "key",
        "apikey",
        "api_key",
        "nickname",
        "x-nickname",
        # Identifiers of observed networks
        "macaddress",
        "key_mac",
        "ssid",
        "cid",
    }
)

# Upload items nest as items -> item -> wifi/cell -> entry.
_MAX_DEPTH = 8


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of a decoded upload body (or response text) with identifiers masked."""
    if isinstance(value, dict):
        if _depth >= _MAX_DEPTH:
            return "{...}"
        return {
            k: _MASK
            if str(k).lower() in _SENSITIVE_VALUE_KEYS
            else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }
    if isinstance(value, list):
        if _depth >= _MAX_DEPTH:
            return "[...]"
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"
    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}...<truncated>"
    return value


def redact_url(url: str) -> str:
    """Mask sensitive query parameters (e.g. ``key``) in *url*."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (name, _MASK if name.lower() in _SENSITIVE_VALUE_KEYS else value)
        for name, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="<>")))
