from .heartbeat import HeartbeatMonitor
from .options import ws_url, get_ws_options
from .supervisor import SocketSupervisor, backoff_delay

__all__ = [
    "HeartbeatMonitor",
    "SocketSupervisor",
    "backoff_delay",
    "get_ws_options",
    "ws_url",
]
