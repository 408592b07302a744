"""Custom exception hierarchy for pystumbler.

Upload failures are not exceptions: the transport reports them as
:class:`pystumbler._transport.UploadOutcome` values.
"""

from __future__ import annotations


class StumblerError(Exception):
    """Base exception for all pystumbler errors."""


class StumblerConfigError(StumblerError):
    """Invalid or missing configuration."""


class StumblerStoreError(StumblerError):
    """The report store failed to read or apply an operation.

    When raised from a batch operation nothing from that batch was
    applied.
    """

    def __init__(self, message: str, *, operation: str = "") -> None:
        self.operation = operation
        super().__init__(message)
