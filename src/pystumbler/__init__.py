"""pystumbler - Async batched uploader for queued location observations."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pystumbler")
except PackageNotFoundError:
    __version__ = "0+local"
from pystumbler._transport import HttpTransport, Transport, UploadOutcome, UploadStatus
from pystumbler.client import StumblerClient
from pystumbler.config import StumblerConfig
from pystumbler.drain import DrainLoop, should_sync
from pystumbler.exceptions import StumblerConfigError, StumblerError, StumblerStoreError
from pystumbler.ledger import RetryLedger
from pystumbler.models import (
    Batch,
    CumulativeStats,
    DropReason,
    DroppedWindow,
    QueuedObservation,
    SyncRequest,
    SyncResult,
)
from pystumbler.stats import StatsAccumulator
from pystumbler.store import ReportStore, SqliteReportStore

__all__ = [
    "__version__",
    "Batch",
    "CumulativeStats",
    "DrainLoop",
    "DropReason",
    "DroppedWindow",
    "HttpTransport",
    "QueuedObservation",
    "ReportStore",
    "RetryLedger",
    "SqliteReportStore",
    "StatsAccumulator",
    "StumblerClient",
    "StumblerConfig",
    "StumblerConfigError",
    "StumblerError",
    "StumblerStoreError",
    "SyncRequest",
    "SyncResult",
    "Transport",
    "UploadOutcome",
    "UploadStatus",
    "should_sync",
]
