"""Encode a window of queued observations into one upload body."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Sequence
from typing import Any

from pystumbler.models._base import format_time
from pystumbler.models.batch import Batch
from pystumbler.models.observation import QueuedObservation

_logger = logging.getLogger(__name__)


class _FragmentError(ValueError):
    """A cell/wifi fragment is not a JSON array."""


def _reject_constant(token: str) -> Any:
    raise _FragmentError(f"{token} is not a JSON value")


def _parse_fragment(name: str, text: str) -> list[Any]:
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (TypeError, ValueError, RecursionError) as exc:
        raise _FragmentError(f"{name} fragment is not valid JSON: {exc}") from exc
    if not isinstance(value, list):
        raise _FragmentError(f"{name} fragment is {type(value).__name__}, expected array")
    return value


def build_item(row: QueuedObservation) -> dict[str, Any]:
    """Build the wire item for *row*.

    Raises ``ValueError`` when the cell or wifi fragment is not a JSON array
    or the position is not finite.
    """
    if not (math.isfinite(row.lat) and math.isfinite(row.lon)):
        raise ValueError(f"position ({row.lat}, {row.lon}) is not finite")
    item: dict[str, Any] = {
        "time": format_time(row.time),
        "lat": row.lat,
        "lon": row.lon,
    }
    if row.altitude is not None:
        item["altitude"] = row.altitude
    if row.accuracy is not None:
        item["accuracy"] = row.accuracy
    item["radio"] = row.radio
    item["cell"] = _parse_fragment("cell", row.cell)
    item["wifi"] = _parse_fragment("wifi", row.wifi)
    return item


def encode_batch(rows: Sequence[QueuedObservation]) -> Batch | None:
    """Encode an ID-ordered window into a :class:`Batch`.

    Rows with a malformed fragment are left out of the body but still
    contribute their pre-counted cells/wifis, and the returned id range
    always spans the whole window.  Returns ``None`` when no row could be
    encoded.
    """
    items: list[dict[str, Any]] = []
    cells = 0
    wifis = 0

    for row in rows:
        cells += row.cell_count
        wifis += row.wifi_count
        try:
            items.append(build_item(row))
        except ValueError as exc:
            _logger.error("Skipping observation %d: %s", row.id, exc)

    if not items:
        return None

    body = json.dumps({"items": items}, separators=(",", ":"), allow_nan=False).encode("utf-8")
    return Batch(
        body=body,
        observations=len(items),
        cells=cells,
        wifis=wifis,
        min_id=rows[0].id,
        max_id=rows[-1].id,
    )
