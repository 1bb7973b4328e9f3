"""Socket URL normalisation and `websockets.connect` options."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse, urlunparse

from chatwire.state.settings import TransportSettings

DEFAULT_WS_PATH = "/api/ws"


def _endpoint_path(path: str) -> str:
    # Only a missing path gets the default; an explicit "/" is kept.
    if not path:
        return DEFAULT_WS_PATH
    return path.rstrip("/") or "/"


def ws_url(server: str, secure: bool = False) -> str:
    """Turn a host, http(s) URL or ws(s) URL into a WebSocket URL.

    ws(s) URLs pass through untouched. http(s) URLs keep their path and switch
    scheme. Input without any path gets the default chat endpoint path.
    """
    server = (server or "").strip()
    if not server:
        raise ValueError("empty server URL")
    if server.startswith(("ws://", "wss://")):
        return server
    if server.startswith(("http://", "https://")):
        parsed = urlparse(server)
        scheme = "wss" if (parsed.scheme == "https" or secure) else "ws"
        path = _endpoint_path(parsed.path)
        return urlunparse((scheme, parsed.netloc, path, parsed.params, parsed.query, parsed.fragment))
    scheme = "wss" if secure else "ws"
    host, sep, path = server.partition("/")
    return f"{scheme}://{host}{_endpoint_path(sep + path)}"


def get_ws_options(settings: TransportSettings) -> dict[str, Any]:
    # Protocol-level pings are off: liveness is the application heartbeat.
    return {
        "open_timeout": settings.timeout,
        "ping_interval": None,
        "ping_timeout": None,
        "max_size": settings.max_message_bytes,
    }


__all__ = ["DEFAULT_WS_PATH", "get_ws_options", "ws_url"]
