"""
Infrastructure Job Listeners

Process-wide listeners subscribed to the job store for side channels.
"""

from .logging_handler import LoggingJobListener
from .websocket_handler import WebSocketJobListener

__all__ = [
    'LoggingJobListener',
    'WebSocketJobListener',
]
