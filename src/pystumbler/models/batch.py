"""Encoded upload batch."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Batch:
    """One window of queued observations encoded for upload.

    ``min_id``/``max_id`` bound the whole input window, including rows
    that could not be encoded; the window is reconciled as a unit.
    """

    body: bytes
    observations: int
    cells: int
    wifis: int
    min_id: int
    max_id: int
