"""Queued observation rows as read from the report store."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from pystumbler.models._base import EpochMillis


class QueuedObservation(BaseModel):
    """One locally recorded observation waiting for upload.

    ``cell`` and ``wifi`` hold JSON array fragments exactly as the
    collector wrote them.  They are validated when a batch is encoded,
    not here, so that a corrupt row can still be read and reconciled.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(..., ge=1, description="Queue position; monotonically increasing")
    time: EpochMillis = Field(..., description="Observation time (epoch ms)")
    lat: float
    lon: float
    altitude: int | None = None
    accuracy: int | None = None
    radio: str = ""
    cell: str = "[]"
    wifi: str = "[]"
    cell_count: int = 0
    wifi_count: int = 0
    retry_number: int = Field(default=0, ge=0)
