from .limits import OutboundLimiter
from .correlation import CorrelationTable

__all__ = ["CorrelationTable", "OutboundLimiter"]
