"""Shrink request parameters and GeoJSON payloads before DEBUG logging.

A single page can carry thousands of coordinate pairs and requests may
carry a bearer token.  :func:`redact_for_log` returns a bounded copy in
which secrets are masked, coordinate arrays are elided and long strings
and lists are cut short.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_MAX_DEPTH = 20

_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "access_token",
        "api_key",
        "api_token",
        "apikey",
        "apitoken",
        "authorization",
        "cookie",
        "password",
        "token",
    }
)

#: Keys whose values are replaced by a fixed marker rather than walked.
_ELIDED_KEYS: dict[str, str] = {"coordinates": "<coordinates>"}


def _mask(key: str) -> str | None:
    if key.lower() in _SECRET_KEYS:
        return "<redacted>"
    return _ELIDED_KEYS.get(key)


def _shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}…<truncated>"


def redact_for_log(
    value: Any,
    *,
    max_string: int = 512,
    max_items: int = 5,
    _depth: int = 0,
) -> Any:
    """Return a redacted, size-bounded copy of *value* suitable for debug logs.

    Scalars pass through, strings longer than *max_string* are cut,
    sequences keep their first *max_items* entries followed by a
    ``"<+N more>"`` marker, and unknown objects become their ``repr``.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _shorten(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    def _walk(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, max_items=max_items, _depth=_depth + 1)

    if isinstance(value, Mapping):
        out: dict[str, Any] = {}
        for raw_key, item in value.items():
            key = str(raw_key)
            marker = _mask(key)
            out[key] = marker if marker is not None else _walk(item)
        return out

    if isinstance(value, Sequence):
        head = [_walk(item) for item in value[:max_items]]
        hidden = len(value) - len(head)
        if hidden > 0:
            head.append(f"<+{hidden} more>")
        return head

    return repr(value)
