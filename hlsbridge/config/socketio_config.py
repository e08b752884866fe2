"""
SocketIO Configuration

Configures Flask-SocketIO with a Redis message queue for live job updates.
"""

import logging
import os
from typing import Optional

from flask_socketio import SocketIO

from hlsbridge.config.redis_config import RedisConfig

logger = logging.getLogger(__name__)

# Global SocketIO instance
socketio: Optional[SocketIO] = None


def _message_queue() -> Optional[str]:
    # The memory job store runs everything in one process, no queue needed
    if os.getenv("JOB_STORE_BACKEND", "memory").lower() != "redis":
        return None
    return os.getenv("SOCKETIO_MESSAGE_QUEUE") or RedisConfig().connection_url


def _async_mode() -> str:
    # Memory-store pipelines run on OS threads of the web process and emit
    # from them, which unpatched gevent cannot serve
    default = "gevent" if os.getenv("JOB_STORE_BACKEND", "memory").lower() == "redis" else "threading"
    return os.getenv("SOCKETIO_ASYNC_MODE", default)


def init_socketio(app) -> SocketIO:
    """
    Initialize Flask-SocketIO for the web process.

    Args:
        app: Flask application instance

    Returns:
        SocketIO instance
    """
    global socketio

    message_queue = _message_queue()
    async_mode = _async_mode()
    try:
        socketio = SocketIO(
            app,
            cors_allowed_origins=os.getenv("CORS_ORIGINS", "*"),
            message_queue=message_queue,
            async_mode=async_mode,
            logger=False,
            engineio_logger=False,
            ping_timeout=60,
            ping_interval=25,
        )
    except Exception as e:
        logger.error(f"Failed to initialize SocketIO: {e}")
        raise

    logger.info(f"SocketIO initialized ({async_mode}, message queue: {message_queue or 'none'})")
    return socketio


def init_socketio_emitter() -> Optional[SocketIO]:
    """
    Initialize a write-only SocketIO emitter for Celery workers.

    Workers have no client connections; they publish events on the Redis
    message queue and the web process delivers them.

    Returns:
        SocketIO instance, or None when no message queue is configured
    """
    global socketio

    message_queue = _message_queue()
    if message_queue is None:
        logger.info("No SocketIO message queue configured, worker emits disabled")
        return None

    socketio = SocketIO(message_queue=message_queue)
    logger.info(f"SocketIO emitter initialized on {message_queue}")
    return socketio


def get_socketio() -> Optional[SocketIO]:
    """Get the global SocketIO instance, None if not initialized."""
    return socketio


def is_socketio_enabled() -> bool:
    """
    Check if SocketIO is enabled and initialized.

    Returns:
        bool: True if SocketIO is available
    """
    socketio_enabled = os.getenv("SOCKETIO_ENABLED", "true").lower() == "true"
    return socketio_enabled and socketio is not None
