"""Drain loop: upload the report queue window by window.

One run snapshots the current maximum id, then walks ``(0, max_id]`` in
id order, ``batch_size`` rows at a time.  Each window is encoded,
uploaded (with a single uncompressed resend after a 400), and reconciled
against the store before the next window is read.  Rows appended during
the run are left for the next run.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence

from pystumbler._constants import MAX_RETRY_COUNT, REQUEST_BATCH_SIZE
from pystumbler._encoder import encode_batch
from pystumbler._transport import Transport, UploadOutcome, UploadStatus
from pystumbler.config import StumblerConfig
from pystumbler.exceptions import StumblerError, StumblerStoreError
from pystumbler.ledger import DropCallback, LedgerUpdate, RetryLedger
from pystumbler.models.batch import Batch
from pystumbler.models.observation import QueuedObservation
from pystumbler.models.result import DropReason, SyncRequest, SyncResult
from pystumbler.stats import StatsAccumulator
from pystumbler.store.base import ReportStore

_logger = logging.getLogger(__name__)


def should_sync(request: SyncRequest, *, wifi_only: bool) -> bool:
    """Whether the network gate lets a run start."""
    if request.ignore_network_status or not wifi_only:
        return True
    return request.network_acceptable


class DrainLoop:
    """Uploads every queued observation present when a run starts.

    Runs must not overlap on the same store; the caller schedules them.
    """

    def __init__(
        self,
        store: ReportStore,
        transport: Transport,
        *,
        batch_size: int = REQUEST_BATCH_SIZE,
        max_retry_count: int = MAX_RETRY_COUNT,
        compress: bool = True,
        wifi_only: bool = True,
        stats: StatsAccumulator | None = None,
        on_drop: DropCallback | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._store = store
        self._transport = transport
        self._batch_size = batch_size
        self._compress = compress
        self._wifi_only = wifi_only
        self._ledger = RetryLedger(store, max_retry_count=max_retry_count, on_drop=on_drop)
        self._stats = stats if stats is not None else StatsAccumulator(store)

    @classmethod
    def from_config(
        cls,
        config: StumblerConfig,
        store: ReportStore,
        transport: Transport,
        *,
        stats: StatsAccumulator | None = None,
        on_drop: DropCallback | None = None,
    ) -> DrainLoop:
        return cls(
            store,
            transport,
            batch_size=config.batch_size,
            max_retry_count=config.max_retry_count,
            compress=config.compress,
            wifi_only=config.wifi_only,
            stats=stats,
            on_drop=on_drop,
        )

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, request: SyncRequest | None = None) -> SyncResult:
        """Drain the queue once.  Never raises; failures are reported on the result."""
        request = request if request is not None else SyncRequest()
        result = SyncResult()

        if not should_sync(request, wifi_only=self._wifi_only):
            _logger.debug("Not on an acceptable network, not sending")
            result.skipped = True
            result.num_io_exceptions += 1
            return result

        try:
            queue_max_id = await self._store.max_id()
        except StumblerStoreError:
            result.database_error = True
            return result

        queue_min_id = 0
        while queue_min_id < queue_max_id:
            try:
                next_min_id = await self._drain_window(queue_min_id, queue_max_id, result)
            except StumblerError:
                _logger.error("Cannot read queue after id %d; ending run", queue_min_id, exc_info=True)
                result.database_error = True
                break
            except Exception:
                # Rows of this window are left as they were; the next run retries them.
                _logger.exception("Unexpected error draining after id %d; ending run", queue_min_id)
                result.num_io_exceptions += 1
                break
            if next_min_id is None:
                break
            queue_min_id = next_min_id

        await self._merge_stats(result)
        _logger.info(
            "Network synchronization complete: %d observation(s), %d cell(s), %d wifi(s) uploaded",
            result.observations_uploaded,
            result.cells_uploaded,
            result.wifis_uploaded,
        )
        return result

    async def _drain_window(self, queue_min_id: int, queue_max_id: int, result: SyncResult) -> int | None:
        """Process one window and return the id the next window starts after.

        ``None`` ends the run.
        """
        async with self._store.open_window(queue_min_id, queue_max_id, self._batch_size) as rows:
            if not rows:
                # Only possible when rows in the snapshot were deleted by someone else.
                _logger.info("No reports left in (%d, %d]; ending run", queue_min_id, queue_max_id)
                return None

            window_max_id = rows[-1].id
            batch = encode_batch(rows)
            if batch is None:
                await self._apply_ledger(result, self._ledger.drop(rows, reason=DropReason.UNENCODABLE))
                return window_max_id

            outcome = await self._upload(batch)
            if outcome.accepted:
                await self._commit(batch, result)
            else:
                await self._fail(rows, outcome, result)
            return batch.max_id

    async def _upload(self, batch: Batch) -> UploadOutcome:
        outcome = await self._transport.send(batch.body, compress=self._compress)
        if self._compress and outcome.status is UploadStatus.REJECTED_MALFORMED:
            _logger.info("Batch [%d, %d] rejected as malformed; resending uncompressed", batch.min_id, batch.max_id)
            outcome = await self._transport.send(batch.body, compress=False)
        return outcome

    async def _commit(self, batch: Batch, result: SyncResult) -> None:
        try:
            await self._store.delete_range(batch.min_id, batch.max_id)
        except StumblerStoreError:
            # Rows stay queued and will be sent again on the next run.
            result.database_error = True
            return
        result.batches_uploaded += 1
        result.observations_uploaded += batch.observations
        result.cells_uploaded += batch.cells
        result.wifis_uploaded += batch.wifis

    async def _fail(self, rows: Sequence[QueuedObservation], outcome: UploadOutcome, result: SyncResult) -> None:
        result.num_io_exceptions += 1
        _logger.error(
            "Upload of [%d, %d] failed: %s%s",
            rows[0].id,
            rows[-1].id,
            outcome.status,
            f" (HTTP {outcome.status_code})" if outcome.status_code is not None else "",
        )
        if outcome.is_transient:
            await self._apply_ledger(result, self._ledger.retry(rows))
        else:
            await self._apply_ledger(
                result,
                self._ledger.drop(rows, reason=DropReason.REJECTED, status_code=outcome.status_code),
            )

    @staticmethod
    async def _apply_ledger(result: SyncResult, pending: Awaitable[LedgerUpdate]) -> None:
        try:
            update = await pending
        except StumblerStoreError:
            result.database_error = True
            return
        result.rows_updated += update.updated
        result.rows_deleted += update.deleted
        result.rows_dropped += update.dropped
        if update.dropped_window is not None:
            result.dropped.append(update.dropped_window)

    async def _merge_stats(self, result: SyncResult) -> None:
        try:
            await self._stats.merge(result.observations_uploaded, result.cells_uploaded, result.wifis_uploaded)
        except StumblerStoreError:
            _logger.error("Update sync stats failed", exc_info=True)
            result.stats_error = True
            result.database_error = True
            result.num_io_exceptions += 1
