"""Cumulative upload statistics."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from pystumbler._constants import (
    STATS_KEY_CELLS_SENT,
    STATS_KEY_LAST_UPLOAD_TIME,
    STATS_KEY_OBSERVATIONS_SENT,
    STATS_KEY_WIFIS_SENT,
)

_logger = logging.getLogger(__name__)

_FIELD_KEYS: dict[str, str] = {
    "observations_sent": STATS_KEY_OBSERVATIONS_SENT,
    "cells_sent": STATS_KEY_CELLS_SENT,
    "wifis_sent": STATS_KEY_WIFIS_SENT,
    "last_upload_time": STATS_KEY_LAST_UPLOAD_TIME,
}


def _as_int(key: str, value: str | None) -> int:
    if value is None:
        return 0
    try:
        return int(value)
    except ValueError:
        _logger.warning("Ignoring unparsable stats value %s=%r", key, value)
        return 0


class CumulativeStats(BaseModel):
    """Totals across every sync run.  Missing keys read as zero."""

    model_config = ConfigDict(frozen=True)

    observations_sent: int = 0
    cells_sent: int = 0
    wifis_sent: int = 0
    last_upload_time: int = 0

    @classmethod
    def from_rows(cls, rows: Mapping[str, str]) -> CumulativeStats:
        """Build from the store's key/value rows."""
        return cls(**{field: _as_int(key, rows.get(key)) for field, key in _FIELD_KEYS.items()})

    def to_rows(self) -> dict[str, str]:
        """Serialise to store key/value rows."""
        return {key: str(getattr(self, field)) for field, key in _FIELD_KEYS.items()}
