"""Cumulative delivery statistics."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from pystumbler.models.stats import CumulativeStats
from pystumbler.store.base import ReportStore, UpsertStat

_logger = logging.getLogger(__name__)


def _now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


class StatsAccumulator:
    """Read-merge-write of the cumulative counters kept in the store."""

    def __init__(self, store: ReportStore, *, clock: Callable[[], int] = _now_ms) -> None:
        self._store = store
        self._clock = clock

    async def read(self) -> CumulativeStats:
        return CumulativeStats.from_rows(await self._store.read_stats())

    async def merge(self, observations: int, cells: int, wifis: int) -> CumulativeStats | None:
        """Add one run's delivered counts to the stored totals.

        Nothing is read or written when all deltas are zero.  Store failures
        propagate as :class:`~pystumbler.exceptions.StumblerStoreError`.
        """
        if observations == 0 and cells == 0 and wifis == 0:
            return None

        current = await self.read()
        merged = CumulativeStats(
            observations_sent=current.observations_sent + observations,
            cells_sent=current.cells_sent + cells,
            wifis_sent=current.wifis_sent + wifis,
            last_upload_time=self._clock(),
        )
        await self._store.apply_batch([UpsertStat(key, value) for key, value in merged.to_rows().items()])
        _logger.debug("Cumulative stats now %s", merged)
        return merged
