"""
WebSocket Job Listener

Bridges job store notifications to Socket.IO rooms. Works both in the web
process and in Celery workers, where the Socket.IO instance is a
write-only emitter on the Redis message queue.
"""

import logging
import threading

from hlsbridge.api.websocket_events import emit_job_closed, emit_job_update
from hlsbridge.config.socketio_config import is_socketio_enabled
from hlsbridge.domain.job_management import StreamJob

logger = logging.getLogger(__name__)

DEFAULT_CLOSE_GRACE_SECONDS = 1.0


class WebSocketJobListener:
    """
    Emits ``job_update`` for every snapshot and ``job_closed`` once a job
    reaches a terminal status, after a grace delay so clients receive the
    final update before the room is closed.
    """

    def __init__(self, close_grace_seconds: float = DEFAULT_CLOSE_GRACE_SECONDS):
        self.close_grace_seconds = close_grace_seconds

    def __call__(self, job: StreamJob) -> None:
        if not is_socketio_enabled():
            logger.debug("SocketIO disabled, skipping job_update emission")
            return

        emit_job_update(job.job_id, job.to_dict())

        if job.is_terminal():
            self._schedule_close(job.job_id, job.status.value)

    def _schedule_close(self, job_id: str, status: str) -> None:
        if self.close_grace_seconds <= 0:
            emit_job_closed(job_id, status)
            return

        timer = threading.Timer(self.close_grace_seconds, emit_job_closed, args=(job_id, status))
        timer.daemon = True
        timer.start()
