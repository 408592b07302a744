"""Client configuration for pystumbler."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlencode

from pystumbler._constants import (
    MAX_RETRY_COUNT,
    REQUEST_BATCH_SIZE,
    REQUEST_TIMEOUT_S,
    SUBMIT_URL,
    USER_AGENT,
)
from pystumbler.exceptions import StumblerConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env: Mapping[str, str], key: str, cast: type) -> Any:
    raw = env.get(key)
    if raw is None:
        return None
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise StumblerConfigError(f"{key} must be a {cast.__name__}, got {raw!r}") from exc


@dataclasses.dataclass(frozen=True)
class StumblerConfig:
    """Upload configuration.

    Initialised once at startup and shared by every sync run.

    Parameters
    ----------
    submit_url : str
        Collection endpoint receiving ``{"items": [...]}`` POSTs.
    api_key : str or None
        Sent as the ``key`` query parameter when set.
    nickname : str or None
        Optional contributor label sent in the ``X-Nickname`` header.
    user_agent : str
        ``User-Agent`` header value.
    wifi_only : bool
        Only upload while the caller reports an acceptable network
        (unless a run explicitly ignores the network status).
    batch_size : int
        Maximum number of queued observations per POST.
    max_retry_count : int
        Transient failures a row survives; the row is deleted once its
        retry counter reaches this value.
    request_timeout : float
        Total timeout in seconds for one POST.
    compress : bool
        Gzip request bodies.  A 400 on a compressed body is retried
        once uncompressed.
    """

    submit_url: str = SUBMIT_URL
    api_key: str | None = None
    nickname: str | None = None
    user_agent: str = USER_AGENT
    wifi_only: bool = True
    batch_size: int = REQUEST_BATCH_SIZE
    max_retry_count: int = MAX_RETRY_COUNT
    request_timeout: float = REQUEST_TIMEOUT_S
    compress: bool = True

    def __post_init__(self) -> None:
        if not self.submit_url.startswith(("http://", "https://")):
            raise StumblerConfigError(f"submit_url must be an http(s) URL, got {self.submit_url!r}")
        if self.batch_size < 1:
            raise StumblerConfigError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.max_retry_count < 1:
            raise StumblerConfigError(f"max_retry_count must be >= 1, got {self.max_retry_count}")
        if self.request_timeout <= 0:
            raise StumblerConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        for name in ("nickname", "user_agent"):
            value = getattr(self, name)
            if value and any(ch in value for ch in "\r\n"):
                raise StumblerConfigError(f"{name} must not contain line breaks")

    @property
    def request_url(self) -> str:
        """Submit URL including the API key query parameter."""
        if not self.api_key:
            return self.submit_url
        separator = "&" if "?" in self.submit_url else "?"
        return f"{self.submit_url}{separator}{urlencode({'key': self.api_key})}"

    @classmethod
    def from_env(cls, **overrides: Any) -> StumblerConfig:
        """Create configuration from environment variables.

        Reads optional ``STUMBLER_*`` variables.  Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        StumblerConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "STUMBLER_SUBMIT_URL": "submit_url",
            "STUMBLER_API_KEY": "api_key",
            "STUMBLER_NICKNAME": "nickname",
            "STUMBLER_USER_AGENT": "user_agent",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        if "wifi_only" not in overrides:
            config_kwargs["wifi_only"] = _env_bool(env.get("STUMBLER_WIFI_ONLY"), True)
        if "compress" not in overrides:
            config_kwargs["compress"] = _env_bool(env.get("STUMBLER_COMPRESS"), True)

        numeric = (
            ("STUMBLER_BATCH_SIZE", "batch_size", int),
            ("STUMBLER_MAX_RETRY_COUNT", "max_retry_count", int),
            ("STUMBLER_REQUEST_TIMEOUT", "request_timeout", float),
        )
        for env_key, field_name, cast in numeric:
            if field_name in overrides:
                continue
            value = _env_number(env, env_key, cast)
            if value is not None:
                config_kwargs[field_name] = value

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
