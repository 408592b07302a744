"""HTTP transport for batch uploads.

A single POST per attempt.  Every attempt ends in an
:class:`UploadOutcome`; nothing here raises for HTTP or network failures.
"""

from __future__ import annotations

import asyncio
import gzip
import json
import logging
import zlib
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import aiohttp

from pystumbler._constants import MALFORMED_STATUS, NICKNAME_HEADER, USER_AGENT_HEADER
from pystumbler._redact import redact_for_log, redact_url
from pystumbler.config import StumblerConfig

_logger = logging.getLogger(__name__)


class UploadStatus(StrEnum):
    ACCEPTED = "accepted"
    REJECTED_MALFORMED = "rejected_malformed"
    REJECTED_PERMANENT = "rejected_permanent"
    REJECTED_TRANSIENT = "rejected_transient"
    TRANSPORT_ERROR = "transport_error"


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    """Classified result of one upload attempt."""

    status: UploadStatus
    status_code: int | None = None
    error: str | None = None

    @classmethod
    def from_status_code(cls, code: int) -> UploadOutcome:
        if 200 <= code <= 299:
            return cls(UploadStatus.ACCEPTED, code)
        if code == MALFORMED_STATUS:
            return cls(UploadStatus.REJECTED_MALFORMED, code)
        if 500 <= code <= 599:
            return cls(UploadStatus.REJECTED_TRANSIENT, code)
        return cls(UploadStatus.REJECTED_PERMANENT, code)

    @classmethod
    def transport_error(cls, error: str) -> UploadOutcome:
        return cls(UploadStatus.TRANSPORT_ERROR, error=error)

    @property
    def accepted(self) -> bool:
        return self.status is UploadStatus.ACCEPTED

    @property
    def is_transient(self) -> bool:
        """Whether the rows should be kept and retried on a later run."""
        return self.status in (UploadStatus.REJECTED_TRANSIENT, UploadStatus.TRANSPORT_ERROR)


class Transport(Protocol):
    """Structural transport interface used by the drain loop.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def send(self, body: bytes, *, compress: bool) -> UploadOutcome:
        ...


class HttpTransport:
    """POSTs encoded batches to the configured submit URL."""

    def __init__(self, config: StumblerConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _build_headers(self, *, compressed: bool, length: int) -> dict[str, str]:
        headers: dict[str, str] = {
            USER_AGENT_HEADER: self._config.user_agent,
            "Content-Type": "application/json",
            "Content-Length": str(length),
        }
        if self._config.nickname:
            headers[NICKNAME_HEADER] = self._config.nickname
        if compressed:
            headers["Content-Encoding"] = "gzip"
        return headers

    def _log_body(self, body: bytes, *, compressed: bool) -> None:
        if not _logger.isEnabledFor(logging.DEBUG):
            return
        url = redact_url(self._config.request_url)
        if compressed:
            _logger.debug("Uploading compressed data, crc32: %d to %s", zlib.crc32(body), url)
            return
        try:
            preview = redact_for_log(json.loads(body))
        except ValueError:
            preview = redact_for_log(body)
        _logger.debug("Uploading %s to %s", preview, url)

    async def send(self, body: bytes, *, compress: bool) -> UploadOutcome:
        """POST *body*, gzipped when *compress* is set, and classify the response."""
        if compress:
            body = gzip.compress(body)
        headers = self._build_headers(compressed=compress, length=len(body))
        self._log_body(body, compressed=compress)

        try:
            async with self._http.post(
                self._config.request_url,
                data=body,
                headers=headers,
                timeout=self._timeout,
                allow_redirects=False,
            ) as resp:
                code = resp.status
                _logger.debug("Upload returned %d", code)
                if code != 204:
                    await self._drain_response(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            _logger.error("Upload to %s failed: %r", redact_url(self._config.request_url), exc)
            return UploadOutcome.transport_error(repr(exc))

        return UploadOutcome.from_status_code(code)

    @staticmethod
    async def _drain_response(resp: aiohttp.ClientResponse) -> None:
        """Read and log the response body; failures here never affect the outcome."""
        try:
            text = await resp.text(errors="replace")
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            _logger.debug("Could not read response body: %r", exc)
            return
        _logger.debug("Response was: %s", redact_for_log(text, max_string=200))
