"""Per-run sync request and result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


@dataclass(frozen=True, slots=True)
class SyncRequest:
    """Gating inputs supplied by the caller for one run.

    ``network_acceptable`` reports whether the device is currently on a
    network the user allows uploads on (e.g. WiFi).
    ``ignore_network_status`` forces the run regardless.
    """

    network_acceptable: bool = True
    ignore_network_status: bool = False


class DropReason(StrEnum):
    RETRY_EXHAUSTED = "retry_exhausted"
    REJECTED = "rejected"
    UNENCODABLE = "unencodable"


@dataclass(frozen=True, slots=True)
class DroppedWindow:
    """Queued observations deleted without having been delivered."""

    reason: DropReason
    min_id: int
    max_id: int
    row_ids: tuple[int, ...]
    status_code: int | None = None


@dataclass(slots=True)
class SyncResult:
    """Counters describing one drain run."""

    observations_uploaded: int = 0
    cells_uploaded: int = 0
    wifis_uploaded: int = 0
    batches_uploaded: int = 0
    rows_updated: int = 0
    rows_deleted: int = 0
    rows_dropped: int = 0
    num_io_exceptions: int = 0
    database_error: bool = False
    stats_error: bool = False
    skipped: bool = False
    dropped: list[DroppedWindow] = field(default_factory=list)

    @property
    def has_uploads(self) -> bool:
        return self.observations_uploaded > 0 or self.cells_uploaded > 0 or self.wifis_uploaded > 0
