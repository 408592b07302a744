"""Report store layer.

The drain loop only depends on the :class:`ReportStore` protocol;
:class:`SqliteReportStore` is the bundled implementation.
"""

from pystumbler.store.base import (
    DeleteReport,
    ReportStore,
    StoreOperation,
    UpdateRetryNumber,
    UpsertStat,
)
from pystumbler.store.sqlite import SqliteReportStore

__all__ = [
    "DeleteReport",
    "ReportStore",
    "SqliteReportStore",
    "StoreOperation",
    "UpdateRetryNumber",
    "UpsertStat",
]
