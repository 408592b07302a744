"""High-level async upload client."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pystumbler._transport import HttpTransport
from pystumbler.config import StumblerConfig
from pystumbler.drain import DrainLoop
from pystumbler.exceptions import StumblerError
from pystumbler.ledger import DropCallback
from pystumbler.models.result import SyncRequest, SyncResult
from pystumbler.models.stats import CumulativeStats
from pystumbler.stats import StatsAccumulator
from pystumbler.store.base import ReportStore

_logger = logging.getLogger(__name__)


class StumblerClient:
    """Uploads queued observations to the collection endpoint.

    Usage::

        async with StumblerClient(config, store) as client:
            result = await client.sync(network_acceptable=on_wifi)
    """

    def __init__(
        self,
        config: StumblerConfig,
        store: ReportStore,
        *,
        session: aiohttp.ClientSession | None = None,
        on_drop: DropCallback | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._external_session = session is not None
        self._http_session = session
        self._on_drop = on_drop
        self._stats = StatsAccumulator(store)
        self._drain: DrainLoop | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> StumblerClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        transport = HttpTransport(self._config, self._http_session)
        self._drain = DrainLoop.from_config(
            self._config,
            self._store,
            transport,
            stats=self._stats,
            on_drop=self._on_drop,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._drain = None

    def _require_drain(self) -> DrainLoop:
        if self._drain is None:
            raise StumblerError("Client not initialized. Use 'async with StumblerClient(...) as client:'")
        return self._drain

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sync(self, *, network_acceptable: bool = True, ignore_network_status: bool = False) -> SyncResult:
        """Run one drain of the report queue."""
        drain = self._require_drain()
        request = SyncRequest(network_acceptable=network_acceptable, ignore_network_status=ignore_network_status)
        result = await drain.run(request)
        if result.skipped:
            _logger.debug("Sync skipped by network gate")
        return result

    async def stats(self) -> CumulativeStats:
        """Current cumulative upload statistics."""
        return await self._stats.read()
