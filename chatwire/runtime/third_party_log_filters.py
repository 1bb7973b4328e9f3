"""Log noise filters for third-party libraries.

The filter layer stays small: it only adjusts a few logger levels to keep
interactive sessions readable.
"""

from __future__ import annotations

import logging

from chatwire.config.logging import SHOW_WEBSOCKETS_LOGS


def configure() -> None:
    # websockets logs every frame and keepalive at DEBUG.
    if not SHOW_WEBSOCKETS_LOGS:
        logging.getLogger("websockets").setLevel(logging.WARNING)
        logging.getLogger("websockets.client").setLevel(logging.WARNING)
    # Event loop debug chatter about slow callbacks is not actionable here.
    logging.getLogger("asyncio").setLevel(logging.WARNING)


__all__ = ["configure"]
