from __future__ import annotations

from pathlib import Path

import pytest

from factories import report_fields
from pystumbler.exceptions import StumblerStoreError
from pystumbler.ledger import RetryLedger
from pystumbler.models import DroppedWindow, DropReason
from pystumbler.store import SqliteReportStore, UpdateRetryNumber


async def _window(store: SqliteReportStore, count: int):
    for i in range(1, count + 1):
        await store.insert_report(**report_fields(i))
    async with store.open_window(0, count, count) as rows:
        return list(rows)


@pytest.mark.asyncio
async def test_retry_increments_counters(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        rows = await _window(store, 4)

        update = await RetryLedger(store).retry(rows)

        assert (update.updated, update.deleted, update.dropped) == (4, 0, 0)
        assert update.dropped_window is None
        assert [row.retry_number for row in await store.list_reports()] == [1, 1, 1, 1]


@pytest.mark.asyncio
async def test_retry_deletes_rows_reaching_ceiling(tmp_path: Path) -> None:
    drops: list[DroppedWindow] = []
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        await _window(store, 3)
        await store.apply_batch([UpdateRetryNumber(2, 2)])
        async with store.open_window(0, 3, 3) as rows:
            window = list(rows)

        update = await RetryLedger(store, max_retry_count=3, on_drop=drops.append).retry(window)

        assert (update.updated, update.deleted) == (2, 1)
        remaining = await store.list_reports()
        assert [(row.id, row.retry_number) for row in remaining] == [(1, 1), (3, 1)]
        assert drops == [DroppedWindow(DropReason.RETRY_EXHAUSTED, 2, 2, (2,))]


@pytest.mark.asyncio
async def test_drop_deletes_whole_range(tmp_path: Path) -> None:
    drops: list[DroppedWindow] = []
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        rows = await _window(store, 5)
        await store.insert_report(**report_fields(6))

        update = await RetryLedger(store, on_drop=drops.append).drop(rows, status_code=413)

        assert update.dropped == 5
        assert [row.id for row in await store.list_reports()] == [6]
        (dropped,) = drops
        assert dropped.reason is DropReason.REJECTED
        assert (dropped.min_id, dropped.max_id, dropped.status_code) == (1, 5, 413)
        assert dropped.row_ids == (1, 2, 3, 4, 5)


@pytest.mark.asyncio
async def test_failing_drop_callback_does_not_break_ledger(tmp_path: Path) -> None:
    def _boom(_dropped: DroppedWindow) -> None:
        raise RuntimeError("sink down")

    async with SqliteReportStore(tmp_path / "reports.db") as store:
        rows = await _window(store, 2)

        update = await RetryLedger(store, on_drop=_boom).drop(rows)

        assert update.dropped == 2
        assert await store.count() == 0


class _BrokenStore:
    async def apply_batch(self, _operations) -> None:
        raise StumblerStoreError("disk full", operation="apply_batch")


@pytest.mark.asyncio
async def test_store_failure_propagates(make_row) -> None:
    ledger = RetryLedger(_BrokenStore())  # type: ignore[arg-type]

    with pytest.raises(StumblerStoreError):
        await ledger.retry([make_row(1), make_row(2)])
