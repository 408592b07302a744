from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from factories import report_fields
from pystumbler.models.observation import QueuedObservation


@pytest.fixture
def make_row() -> Callable[..., QueuedObservation]:
    def _make(report_id: int, **overrides: Any) -> QueuedObservation:
        return QueuedObservation(id=report_id, **report_fields(report_id, **overrides))

    return _make
