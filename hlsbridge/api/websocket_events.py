"""
WebSocket Event Handlers

Handles WebSocket connections and events for live job updates. Clients
join a room named after the job id.
"""

import logging
from typing import Any, Dict

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from hlsbridge.config.socketio_config import get_socketio
from hlsbridge.domain.job_management import JobNotFoundError, JobStateError

logger = logging.getLogger(__name__)


def register_socketio_events(app):
    """
    Register WebSocket event handlers with the Flask-SocketIO instance.

    Args:
        app: Flask application instance
    """
    socketio = get_socketio()

    if socketio is None:
        logger.warning("SocketIO not initialized, skipping event registration")
        return

    @socketio.on("connect")
    def handle_connect():
        logger.info(f"Client connected: {request.sid}")
        emit("connected", {"message": "Connected to server", "client_id": request.sid})

    @socketio.on("disconnect")
    def handle_disconnect():
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on("subscribe_job")
    def handle_subscribe_job(data):
        """
        Subscribe to job updates; the current snapshot is sent right away.

        Args:
            data: dict with 'job_id' field
        """
        job_id = (data or {}).get("job_id")

        if not job_id:
            emit("error", {"message": "Missing job_id"})
            return

        try:
            snapshot = current_app.job_service.get_job_status(job_id)
        except JobNotFoundError:
            emit("error", {"job_id": job_id, "message": f"Job {job_id} not found"})
            return

        join_room(job_id)
        logger.info(f"Client {request.sid} subscribed to job {job_id}")
        emit("subscribed", {"job_id": job_id, "message": f"Subscribed to job {job_id}"})
        emit("job_update", {"job_id": job_id, "job": snapshot})

    @socketio.on("unsubscribe_job")
    def handle_unsubscribe_job(data):
        """
        Unsubscribe from job updates.

        Args:
            data: dict with 'job_id' field
        """
        job_id = (data or {}).get("job_id")

        if not job_id:
            emit("error", {"message": "Missing job_id"})
            return

        leave_room(job_id)
        logger.info(f"Client {request.sid} unsubscribed from job {job_id}")
        emit("unsubscribed", {"job_id": job_id, "message": f"Unsubscribed from job {job_id}"})

    @socketio.on("cancel_job")
    def handle_cancel_job(data):
        """
        Cancel a job that has not finished yet.

        Args:
            data: dict with 'job_id' field
        """
        job_id = (data or {}).get("job_id")

        if not job_id:
            emit("error", {"message": "Missing job_id"})
            return

        try:
            current_app.job_service.cancel_job(job_id)
        except JobNotFoundError:
            emit("error", {"job_id": job_id, "message": f"Job {job_id} not found"})
            return
        except JobStateError as e:
            emit("error", {"job_id": job_id, "message": str(e)})
            return
        except Exception as e:
            logger.error(f"Error cancelling job {job_id}: {e}", exc_info=True)
            emit("error", {"job_id": job_id, "message": "Error cancelling job"})
            return

        logger.info(f"Client {request.sid} cancelled job {job_id}")
        emit("job_cancelled", {"job_id": job_id, "message": f"Job {job_id} cancelled"})

    logger.info("SocketIO event handlers registered")


def emit_job_update(job_id: str, snapshot: Dict[str, Any]) -> None:
    """
    Emit a job snapshot to all clients in the job's room.

    Args:
        job_id: Job identifier
        snapshot: Serialized job
    """
    socketio = get_socketio()

    if socketio is None:
        return

    try:
        socketio.emit("job_update", {"job_id": job_id, "job": snapshot}, room=job_id)
        logger.debug(f"Emitted update for job {job_id}: {snapshot.get('status')}")
    except Exception as e:
        logger.error(f"Failed to emit update for job {job_id}: {e}")


def emit_job_closed(job_id: str, status: str) -> None:
    """
    Tell the job's room that no further updates will follow.

    Args:
        job_id: Job identifier
        status: Terminal status of the job
    """
    socketio = get_socketio()

    if socketio is None:
        return

    try:
        socketio.emit("job_closed", {"job_id": job_id, "status": status}, room=job_id)
        logger.info(f"Emitted close event for job {job_id} ({status})")
    except Exception as e:
        logger.error(f"Failed to emit close for job {job_id}: {e}")
