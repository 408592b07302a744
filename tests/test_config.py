from __future__ import annotations

import pytest

from pystumbler.config import StumblerConfig
from pystumbler.exceptions import StumblerConfigError


def test_defaults() -> None:
    config = StumblerConfig()
    assert config.batch_size == 50
    assert config.max_retry_count == 3
    assert config.compress is True
    assert config.wifi_only is True
    assert config.request_url == "https://location.services.mozilla.com/v1/submit"


def test_api_key_added_to_request_url() -> None:
    config = StumblerConfig(submit_url="https://example.test/v1/submit", api_key="abc def")
    assert config.request_url == "https://example.test/v1/submit?key=abc+def"

    with_query = StumblerConfig(submit_url="https://example.test/v1/submit?v=2", api_key="k")
    assert with_query.request_url == "https://example.test/v1/submit?v=2&key=k"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"batch_size": 0},
        {"max_retry_count": 0},
        {"request_timeout": 0},
        {"submit_url": "ftp://example.test"},
        {"nickname": "walker\r\nX-Injected: 1"},
        {"user_agent": "agent\n"},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(StumblerConfigError):
        StumblerConfig(**kwargs)  # type: ignore[arg-type]


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUMBLER_SUBMIT_URL", "https://collector.test/v1/submit")
    monkeypatch.setenv("STUMBLER_NICKNAME", "walker")
    monkeypatch.setenv("STUMBLER_WIFI_ONLY", "no")
    monkeypatch.setenv("STUMBLER_BATCH_SIZE", "20")
    monkeypatch.setenv("STUMBLER_REQUEST_TIMEOUT", "12.5")

    config = StumblerConfig.from_env(max_retry_count=5)

    assert config.submit_url == "https://collector.test/v1/submit"
    assert config.nickname == "walker"
    assert config.wifi_only is False
    assert config.batch_size == 20
    assert config.request_timeout == 12.5
    assert config.max_retry_count == 5
    assert config.compress is True


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUMBLER_BATCH_SIZE", "20")
    monkeypatch.setenv("STUMBLER_COMPRESS", "off")

    config = StumblerConfig.from_env(batch_size=7, compress=True)

    assert config.batch_size == 7
    assert config.compress is True


def test_from_env_rejects_non_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STUMBLER_BATCH_SIZE", "lots")
    with pytest.raises(StumblerConfigError):
        StumblerConfig.from_env()
