"""Source adapters, one per external feed"""

from .base import SourceAdapter, WebSocketAdapter
from .donations import DonationAdapter
from .pubsub import PubSubAdapter
from .telemetry import TelemetryAdapter

__all__ = [
    "SourceAdapter",
    "WebSocketAdapter",
    "TelemetryAdapter",
    "PubSubAdapter",
    "DonationAdapter",
]
