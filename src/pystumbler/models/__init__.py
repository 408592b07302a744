"""Data models for queued observations, batches, statistics and run results."""

from pystumbler.models._base import EpochMillis, format_time, parse_epoch_millis
from pystumbler.models.batch import Batch
from pystumbler.models.observation import QueuedObservation
from pystumbler.models.result import DroppedWindow, DropReason, SyncRequest, SyncResult
from pystumbler.models.stats import CumulativeStats

__all__ = [
    "Batch",
    "CumulativeStats",
    "DropReason",
    "DroppedWindow",
    "EpochMillis",
    "QueuedObservation",
    "SyncRequest",
    "SyncResult",
    "format_time",
    "parse_epoch_millis",
]
