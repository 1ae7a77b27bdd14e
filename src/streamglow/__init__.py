"""Event-driven light effects for live streams"""

__version__ = "0.1.0"
