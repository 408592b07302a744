"""Shared timestamp helpers for pystumbler models.

Queued observations carry epoch timestamps.  Collectors historically
wrote either seconds or milliseconds; :data:`EpochMillis` accepts both
and normalises to milliseconds so that the wire formatter only deals
with one unit.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BeforeValidator

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_epoch_millis(value: Any) -> int:
    """Convert an epoch timestamp (seconds **or** milliseconds) to milliseconds."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return int(value.timestamp() * 1000)
    ts = int(value)
    if ts < _MS_THRESHOLD:
        ts *= 1000
    return ts


EpochMillis = Annotated[int, BeforeValidator(parse_epoch_millis)]
"""Annotated type that coerces epoch seconds/ms (or datetimes) to epoch ms.

Integers below 1e12 are read as seconds, so a millisecond timestamp from
before 2001-09-09 cannot be represented.  Queue rows are recorded long
after that date.
"""


def format_time(epoch_ms: int) -> str:
    """Format *epoch_ms* as ISO-8601 UTC with millisecond precision.

    >>> format_time(0)
    '1970-01-01T00:00:00.000Z'
    """
    seconds, millis = divmod(int(epoch_ms), 1000)
    moment = datetime.fromtimestamp(seconds, tz=UTC)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{millis:03d}Z"
