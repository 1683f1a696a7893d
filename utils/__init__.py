"""
Utility modules for the browser task agent.
"""
from .cancellation import CancellationToken
from .event_logger import EventLogger, get_event_logger, set_event_logger

__all__ = ["CancellationToken", "EventLogger", "get_event_logger", "set_event_logger"]
