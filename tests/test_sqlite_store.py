from __future__ import annotations

from pathlib import Path

import pytest

from factories import report_fields
from pystumbler.exceptions import StumblerStoreError
from pystumbler.store import DeleteReport, SqliteReportStore, UpdateRetryNumber, UpsertStat


async def _fill(store: SqliteReportStore, count: int) -> list[int]:
    return [await store.insert_report(**report_fields(i)) for i in range(1, count + 1)]


@pytest.mark.asyncio
async def test_empty_store_has_max_id_zero(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        assert await store.max_id() == 0
        assert await store.read_stats() == {}


@pytest.mark.asyncio
async def test_window_is_bounded_ordered_and_exclusive_of_min(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        ids = await _fill(store, 8)
        assert ids == list(range(1, 9))

        async with store.open_window(2, 7, 3) as rows:
            assert [row.id for row in rows] == [3, 4, 5]
            assert rows[0].cell_count == 1
            assert rows[0].retry_number == 0

        async with store.open_window(5, 7, 50) as rows:
            assert [row.id for row in rows] == [6, 7]


@pytest.mark.asyncio
async def test_ids_keep_increasing_after_tail_delete(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        await _fill(store, 3)
        await store.delete_range(1, 3)
        assert await store.max_id() == 0

        new_id = await store.insert_report(**report_fields(4))
        assert new_id == 4


@pytest.mark.asyncio
async def test_delete_range_is_inclusive(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        await _fill(store, 6)

        assert await store.delete_range(2, 4) == 3

        assert [row.id for row in await store.list_reports()] == [1, 5, 6]


@pytest.mark.asyncio
async def test_apply_batch_updates_deletes_and_upserts(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        await _fill(store, 3)

        await store.apply_batch(
            [
                UpdateRetryNumber(1, 2),
                DeleteReport(2),
                UpsertStat("observations_sent", "5"),
            ]
        )
        await store.apply_batch([UpsertStat("observations_sent", "7")])

        rows = await store.list_reports()
        assert [(row.id, row.retry_number) for row in rows] == [(1, 2), (3, 0)]
        assert await store.read_stats() == {"observations_sent": "7"}


@pytest.mark.asyncio
async def test_apply_batch_is_atomic(tmp_path: Path) -> None:
    async with SqliteReportStore(tmp_path / "reports.db") as store:
        await _fill(store, 2)

        with pytest.raises(StumblerStoreError):
            await store.apply_batch([UpdateRetryNumber(1, 1), object()])  # type: ignore[list-item]

        rows = await store.list_reports()
        assert [row.retry_number for row in rows] == [0, 0]


@pytest.mark.asyncio
async def test_closed_store_raises_store_error(tmp_path: Path) -> None:
    store = SqliteReportStore(tmp_path / "reports.db")
    with pytest.raises(StumblerStoreError):
        await store.max_id()
