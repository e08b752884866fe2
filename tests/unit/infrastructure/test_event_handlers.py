"""
Unit tests for the job store listeners.
"""

from unittest.mock import Mock, patch

import pytest

from hlsbridge.domain.job_management import JobStatus, StreamJob
from hlsbridge.infrastructure.event_handlers import LoggingJobListener, WebSocketJobListener

HANDLER = "hlsbridge.infrastructure.event_handlers.websocket_handler"


def _job(status=JobStatus.CREATED, progress=0.0):
    job = StreamJob.create("https://cdn.example.com/movie.mkv")
    job.status = status
    job.progress = progress
    return job


class TestLoggingJobListener:
    def test_status_changes_are_logged_at_info(self):
        logger = Mock()
        listener = LoggingJobListener(logger)
        job = _job(JobStatus.ANALYZING)

        listener(job)
        job.status = JobStatus.ANALYZED
        listener(job)

        assert logger.info.call_count == 2
        assert "analyzing -> analyzed" in logger.info.call_args[0][0]

    def test_progress_within_status_is_debug(self):
        logger = Mock()
        listener = LoggingJobListener(logger)
        job = _job(JobStatus.DOWNLOADING, 10)

        listener(job)
        job.progress = 20
        listener(job)

        logger.debug.assert_called_once()

    def test_error_is_logged_as_error(self):
        logger = Mock()
        job = _job(JobStatus.ERROR)
        job.error_category = "fetch_failed"

        LoggingJobListener(logger)(job)

        logger.error.assert_called_once()
        assert "fetch_failed" in logger.error.call_args[0][0]


class TestWebSocketJobListener:
    @pytest.fixture
    def emitters(self):
        with patch(f"{HANDLER}.is_socketio_enabled", return_value=True), patch(
            f"{HANDLER}.emit_job_update"
        ) as update, patch(f"{HANDLER}.emit_job_closed") as closed:
            yield update, closed

    def test_snapshot_is_emitted_to_job_room(self, emitters):
        update, closed = emitters
        job = _job(JobStatus.CONVERTING, 55)

        WebSocketJobListener(close_grace_seconds=0)(job)

        update.assert_called_once_with(job.job_id, job.to_dict())
        closed.assert_not_called()

    def test_terminal_job_closes_room(self, emitters):
        update, closed = emitters
        job = _job(JobStatus.READY, 100)

        WebSocketJobListener(close_grace_seconds=0)(job)

        closed.assert_called_once_with(job.job_id, "ready")

    def test_disabled_socketio_emits_nothing(self):
        with patch(f"{HANDLER}.is_socketio_enabled", return_value=False), patch(
            f"{HANDLER}.emit_job_update"
        ) as update:
            WebSocketJobListener()(_job())

        update.assert_not_called()
