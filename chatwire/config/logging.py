"""Logging configuration (env-resolved constants only)."""

from __future__ import annotations

import os

LOG_LEVEL: str = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
LOG_FORMAT: str = (os.getenv("LOG_FORMAT") or "").strip() or "%(asctime)s %(levelname)s %(name)s: %(message)s"

# websockets logs every frame at DEBUG; keep it quiet unless asked for.
SHOW_WEBSOCKETS_LOGS: bool = (os.getenv("SHOW_WEBSOCKETS_LOGS") or "").strip().lower() in {"1", "true", "yes"}

__all__ = ["LOG_FORMAT", "LOG_LEVEL", "SHOW_WEBSOCKETS_LOGS"]
