"""Report store contract consumed by the drain loop."""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Protocol

from pystumbler.models.observation import QueuedObservation


@dataclass(frozen=True, slots=True)
class UpdateRetryNumber:
    report_id: int
    retry_number: int


@dataclass(frozen=True, slots=True)
class DeleteReport:
    report_id: int


@dataclass(frozen=True, slots=True)
class UpsertStat:
    key: str
    value: str


StoreOperation = UpdateRetryNumber | DeleteReport | UpsertStat


class ReportStore(Protocol):
    """Persistent, ID-ordered queue of observations plus a stats table.

    Implementations raise :class:`pystumbler.exceptions.StumblerStoreError`
    for any storage failure.
    """

    async def max_id(self) -> int:
        """Largest queued id, or 0 when the queue is empty."""
        ...

    def open_window(
        self, min_id_exclusive: int, max_id_inclusive: int, limit: int
    ) -> AbstractAsyncContextManager[Sequence[QueuedObservation]]:
        """Scoped read of at most *limit* rows in ``(min, max]``, ordered by id."""
        ...

    async def delete_range(self, min_id: int, max_id: int) -> int:
        """Delete every row with ``min_id <= id <= max_id``; returns the count."""
        ...

    async def apply_batch(self, operations: Sequence[StoreOperation]) -> None:
        """Apply *operations* atomically: all of them or none."""
        ...

    async def read_stats(self) -> dict[str, str]:
        ...
