"""
API Namespaces - Organized endpoint groups
"""

import json

from flask import Response, current_app, request, stream_with_context
from flask_restx import Namespace, Resource

from hlsbridge.api.v1.models import (
    cancel_response,
    error_response,
    job_status_response,
    probe_response,
    stream_created_response,
    stream_request,
)
from hlsbridge.domain.errors import (
    ApplicationError,
    ErrorCategory,
    InvalidInputError,
    ProbeError,
    create_error_response,
)
from hlsbridge.domain.job_management import JobNotFoundError, JobStateError

# =============================================================================
# Stream Namespace - Stream job operations
# =============================================================================

stream_ns = Namespace("streams", description="HLS stream job operations")


def _job_service_unavailable():
    return create_error_response(
        ErrorCategory.SYSTEM_ERROR, "Job service not initialized", status_code=503
    )


@stream_ns.route("/")
class StreamList(Resource):
    """Start stream jobs"""

    @stream_ns.doc("start_stream")
    @stream_ns.expect(stream_request, validate=True)
    @stream_ns.response(202, "Accepted", stream_created_response)
    @stream_ns.response(400, "Bad Request", error_response)
    @stream_ns.response(503, "Service Unavailable", error_response)
    def post(self):
        """
        Start converting a remote video to HLS

        Creates a job and schedules its pipeline. Track it with
        GET /streams/<job_id>, the events stream or the Socket.IO room.
        """
        data = request.get_json(silent=True) or {}
        url = (data.get("url") or "").strip()

        if not url:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST,
                "Missing 'url' in request body",
                status_code=400,
            )

        job_service = current_app.job_service
        if not job_service:
            return _job_service_unavailable()

        try:
            job = job_service.start_stream(url)
            return {"job_id": job.job_id, "status": job.status.value}, 202

        except InvalidInputError as e:
            return create_error_response(ErrorCategory.INVALID_URL, str(e), status_code=400)
        except ApplicationError as e:
            return create_error_response(e.category, e.technical_message, status_code=500)
        except Exception as e:
            current_app.logger.exception(f"Unexpected error starting stream: {str(e)}")
            return create_error_response(
                ErrorCategory.SYSTEM_ERROR,
                f"Failed to start stream: {str(e)}",
                status_code=500,
            )


@stream_ns.route("/probe")
class StreamProbe(Resource):
    """Inspect a remote video without converting it"""

    @stream_ns.doc("probe_source")
    @stream_ns.expect(stream_request, validate=True)
    @stream_ns.response(200, "Success", probe_response)
    @stream_ns.response(400, "Bad Request", error_response)
    @stream_ns.response(422, "Unreadable Media", error_response)
    def post(self):
        """
        Get duration, resolution and streams of a remote video

        No job is created; the returned audio tracks are the ones a stream
        job would convert.
        """
        data = request.get_json(silent=True) or {}
        url = (data.get("url") or "").strip()

        if not url:
            return create_error_response(
                ErrorCategory.INVALID_REQUEST,
                "Missing 'url' in request body",
                status_code=400,
            )

        inspection_service = getattr(current_app, "inspection_service", None)
        if not inspection_service:
            return create_error_response(
                ErrorCategory.SYSTEM_ERROR, "Inspection service not initialized", status_code=503
            )

        try:
            return inspection_service.inspect(url), 200

        except InvalidInputError as e:
            return create_error_response(ErrorCategory.INVALID_URL, str(e), status_code=400)
        except ProbeError as e:
            current_app.logger.warning(f"Probe failed for {url}: {str(e)}")
            return create_error_response(ErrorCategory.PROBE_FAILED, str(e), status_code=422)
        except Exception as e:
            current_app.logger.exception(f"Unexpected error probing {url}: {str(e)}")
            return create_error_response(
                ErrorCategory.SYSTEM_ERROR,
                f"Unexpected error: {str(e)}",
                status_code=500,
            )


@stream_ns.route("/<string:job_id>")
@stream_ns.param("job_id", "The job identifier")
class Stream(Resource):
    """Job status operations"""

    @stream_ns.doc("get_stream_status")
    @stream_ns.response(200, "Success", job_status_response)
    @stream_ns.response(404, "Job Not Found", error_response)
    def get(self, job_id):
        """
        Get job status and progress

        Returns the full job snapshot; ``stream_url`` is set once the job is ready.
        """
        job_service = current_app.job_service
        if not job_service:
            return _job_service_unavailable()

        try:
            return job_service.get_job_status(job_id), 200

        except JobNotFoundError:
            return create_error_response(
                ErrorCategory.JOB_NOT_FOUND, f"Job {job_id} not found", status_code=404
            )
        except Exception as e:
            current_app.logger.exception(f"Error getting job status for {job_id}: {str(e)}")
            return create_error_response(
                ErrorCategory.SYSTEM_ERROR,
                f"Internal server error: {str(e)}",
                status_code=500,
            )


@stream_ns.route("/<string:job_id>/cancel")
@stream_ns.param("job_id", "The job identifier")
class StreamCancel(Resource):
    """Cancel a running job"""

    @stream_ns.doc("cancel_stream")
    @stream_ns.response(200, "Cancelled", cancel_response)
    @stream_ns.response(404, "Job Not Found", error_response)
    @stream_ns.response(409, "Job Already Finished", error_response)
    def post(self, job_id):
        """
        Cancel a job that has not finished yet

        The pipeline stops at its next checkpoint and removes its output.
        """
        job_service = current_app.job_service
        if not job_service:
            return _job_service_unavailable()

        try:
            job = job_service.cancel_job(job_id)
            return {"success": True, "job_id": job.job_id, "status": job.status.value}, 200

        except JobNotFoundError:
            return create_error_response(
                ErrorCategory.JOB_NOT_FOUND, f"Job {job_id} not found", status_code=404
            )
        except JobStateError as e:
            return create_error_response(
                ErrorCategory.JOB_NOT_CANCELLABLE, str(e), status_code=409
            )
        except Exception as e:
            current_app.logger.exception(f"Error cancelling job {job_id}: {str(e)}")
            return create_error_response(
                ErrorCategory.SYSTEM_ERROR,
                f"Internal server error: {str(e)}",
                status_code=500,
            )


@stream_ns.route("/<string:job_id>/events")
@stream_ns.param("job_id", "The job identifier")
class StreamEvents(Resource):
    """Server-Sent Events progress stream"""

    @stream_ns.doc("stream_events")
    @stream_ns.produces(["text/event-stream"])
    @stream_ns.response(200, "Event stream of job snapshots")
    @stream_ns.response(404, "Job Not Found", error_response)
    def get(self, job_id):
        """
        Follow a job as Server-Sent Events

        Each event's data is a job snapshot. The stream ends after the
        terminal snapshot.
        """
        job_service = current_app.job_service
        if not job_service:
            return _job_service_unavailable()

        try:
            snapshots = job_service.watch_job(job_id)
        except JobNotFoundError:
            return create_error_response(
                ErrorCategory.JOB_NOT_FOUND, f"Job {job_id} not found", status_code=404
            )

        def generate():
            for job in snapshots:
                yield f"data: {json.dumps(job.to_dict())}\n\n"

        response = Response(stream_with_context(generate()), mimetype="text/event-stream")
        response.headers["Cache-Control"] = "no-cache"
        response.headers["X-Accel-Buffering"] = "no"
        return response
