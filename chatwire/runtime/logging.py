"""Logging initialization."""

from __future__ import annotations

import logging

from chatwire.config.logging import LOG_LEVEL, LOG_FORMAT

from . import third_party_log_filters


def configure_logging(level: str | None = None) -> None:
    third_party_log_filters.configure()
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)


__all__ = ["configure_logging"]
