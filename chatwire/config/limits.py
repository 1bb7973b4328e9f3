"""Outbound rate limit configuration (env-resolved constants only)."""

from __future__ import annotations

import os

# Client-side cap on outbound commands. Disabled when either value is 0 so the
# server's own rate limiting stays authoritative by default.
_MAX_SENDS_RAW = (os.getenv("CHATWIRE_MAX_SENDS_PER_WINDOW") or "").strip()
try:
    CHATWIRE_MAX_SENDS_PER_WINDOW: int = int(_MAX_SENDS_RAW) if _MAX_SENDS_RAW else 0
except Exception:
    CHATWIRE_MAX_SENDS_PER_WINDOW = 0
CHATWIRE_MAX_SENDS_PER_WINDOW = max(0, int(CHATWIRE_MAX_SENDS_PER_WINDOW))

_SEND_WINDOW_RAW = (os.getenv("CHATWIRE_SEND_WINDOW_SECONDS") or "").strip()
try:
    CHATWIRE_SEND_WINDOW_SECONDS: float = float(_SEND_WINDOW_RAW) if _SEND_WINDOW_RAW else 60.0
except Exception:
    CHATWIRE_SEND_WINDOW_SECONDS = 60.0
if CHATWIRE_SEND_WINDOW_SECONDS < 0:
    CHATWIRE_SEND_WINDOW_SECONDS = 0.0

__all__ = [
    "CHATWIRE_MAX_SENDS_PER_WINDOW",
    "CHATWIRE_SEND_WINDOW_SECONDS",
]
