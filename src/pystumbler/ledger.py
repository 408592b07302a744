"""Retry bookkeeping for windows whose upload failed.

Transient failures bump each row's retry counter and delete the rows
that reach the ceiling.  Permanent failures delete the whole window.
Every deletion that loses undelivered data is reported as a
:class:`~pystumbler.models.result.DroppedWindow`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from pystumbler._constants import MAX_RETRY_COUNT
from pystumbler.models.observation import QueuedObservation
from pystumbler.models.result import DroppedWindow, DropReason
from pystumbler.store.base import DeleteReport, ReportStore, StoreOperation, UpdateRetryNumber

_logger = logging.getLogger(__name__)

DropCallback = Callable[[DroppedWindow], None]


@dataclass(frozen=True, slots=True)
class LedgerUpdate:
    """Row counts changed by one ledger call."""

    updated: int = 0
    deleted: int = 0
    dropped: int = 0
    dropped_window: DroppedWindow | None = None


class RetryLedger:
    """Applies the retry policy to failed windows."""

    def __init__(
        self,
        store: ReportStore,
        *,
        max_retry_count: int = MAX_RETRY_COUNT,
        on_drop: DropCallback | None = None,
    ) -> None:
        self._store = store
        self._max_retry_count = max_retry_count
        self._on_drop = on_drop

    async def retry(self, rows: Sequence[QueuedObservation]) -> LedgerUpdate:
        """Record a transient failure for every row of the window.

        All updates and deletes go to the store as one atomic batch.
        Raises :class:`~pystumbler.exceptions.StumblerStoreError` if the
        batch could not be applied; the rows then keep their old counters.
        """
        if not rows:
            return LedgerUpdate()

        operations: list[StoreOperation] = []
        exhausted: list[int] = []
        for row in rows:
            retry = row.retry_number + 1
            if retry >= self._max_retry_count:
                operations.append(DeleteReport(row.id))
                exhausted.append(row.id)
            else:
                operations.append(UpdateRetryNumber(row.id, retry))

        await self._store.apply_batch(operations)

        dropped_window = None
        if exhausted:
            dropped_window = DroppedWindow(
                reason=DropReason.RETRY_EXHAUSTED,
                min_id=exhausted[0],
                max_id=exhausted[-1],
                row_ids=tuple(exhausted),
            )
            self._report(dropped_window)
        return LedgerUpdate(
            updated=len(rows) - len(exhausted),
            deleted=len(exhausted),
            dropped_window=dropped_window,
        )

    async def drop(
        self,
        rows: Sequence[QueuedObservation],
        *,
        reason: DropReason = DropReason.REJECTED,
        status_code: int | None = None,
    ) -> LedgerUpdate:
        """Delete the whole ``[first id, last id]`` window unconditionally."""
        if not rows:
            return LedgerUpdate()

        min_id, max_id = rows[0].id, rows[-1].id
        await self._store.delete_range(min_id, max_id)

        dropped_window = DroppedWindow(
            reason=reason,
            min_id=min_id,
            max_id=max_id,
            row_ids=tuple(row.id for row in rows),
            status_code=status_code,
        )
        self._report(dropped_window)
        return LedgerUpdate(dropped=len(rows), dropped_window=dropped_window)

    def _report(self, dropped: DroppedWindow) -> None:
        _logger.warning(
            "Dropping %d observation(s) in [%d, %d]: %s%s",
            len(dropped.row_ids),
            dropped.min_id,
            dropped.max_id,
            dropped.reason,
            f" (HTTP {dropped.status_code})" if dropped.status_code is not None else "",
        )
        if self._on_drop is None:
            return
        try:
            self._on_drop(dropped)
        except Exception:
            _logger.warning("on_drop callback failed", exc_info=True)
