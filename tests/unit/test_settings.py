from __future__ import annotations

import logging

import pytest

from chatwire.config.logging import SHOW_WEBSOCKETS_LOGS
from chatwire.runtime.settings import load_settings
from chatwire.runtime.logging import configure_logging
from chatwire.transport.options import ws_url, get_ws_options


def test_load_settings_applies_overrides() -> None:
    settings = load_settings(url="ws://example.test/api/ws", reconnect_attempts=0, heartbeat_interval=None)

    assert settings.transport.url == "ws://example.test/api/ws"
    assert settings.transport.reconnect_attempts == 0
    assert settings.transport.heartbeat_interval > 0
    assert settings.transport.reconnect_delay_max >= settings.transport.reconnect_delay


def test_load_settings_rejects_unknown_field() -> None:
    with pytest.raises(TypeError):
        load_settings(no_such_field=1)


@pytest.mark.parametrize(
    ("server", "secure", "expected"),
    [
        ("ws://h:1/custom", False, "ws://h:1/custom"),
        ("wss://h/api/ws", False, "wss://h/api/ws"),
        ("http://h:5040", False, "ws://h:5040/api/ws"),
        ("https://h/chat/ws/", False, "wss://h/chat/ws"),
        ("http://h", True, "wss://h/api/ws"),
        ("localhost:5040", False, "ws://localhost:5040/api/ws"),
        ("localhost:5040/socket", True, "wss://localhost:5040/socket"),
        ("http://h:8080/", False, "ws://h:8080/"),
        ("localhost:5040/", False, "ws://localhost:5040/"),
    ],
)
def test_ws_url_normalisation(server: str, secure: bool, expected: str) -> None:
    assert ws_url(server, secure) == expected


def test_ws_url_rejects_empty() -> None:
    with pytest.raises(ValueError):
        ws_url("   ")


def test_ws_options_disable_protocol_pings() -> None:
    opts = get_ws_options(load_settings(timeout=3.0).transport)
    assert opts["ping_interval"] is None
    assert opts["ping_timeout"] is None
    assert opts["open_timeout"] == 3.0


@pytest.mark.skipif(SHOW_WEBSOCKETS_LOGS, reason="websockets logging explicitly enabled")
def test_configure_logging_quiets_websockets() -> None:
    configure_logging("DEBUG")
    assert logging.getLogger("websockets").level == logging.WARNING
