"""Test doubles and helpers.

Focused modules:
- sockets.py: in-memory WebSocket and connector doubles
- events.py: event recording and polling helpers
- settings.py: fast transport settings for tests
"""

from __future__ import annotations

from .settings import make_settings
from .events import EventRecorder, wait_until
from .sockets import FakeSocket, FakeConnector

__all__ = [
    "EventRecorder",
    "FakeConnector",
    "FakeSocket",
    "make_settings",
    "wait_until",
]
