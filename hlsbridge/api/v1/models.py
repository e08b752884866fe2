"""
API Models for request/response validation and Swagger documentation
"""

from flask_restx import fields

from hlsbridge.api.v1 import api

# =============================================================================
# Request Models
# =============================================================================

stream_request = api.model(
    "StreamRequest",
    {
        "url": fields.String(
            required=True,
            description="Direct http(s) link to a video file",
            example="https://example.com/media/movie.mkv",
        )
    },
)

# =============================================================================
# Response Models
# =============================================================================

audio_track_model = api.model(
    "AudioTrack",
    {
        "index": fields.Integer(description="Position among the source audio streams"),
        "language": fields.String(description="Language tag, 'und' when unknown"),
        "name": fields.String(description="Display name"),
        "is_default": fields.Boolean(description="Selected by default in players"),
        "slug": fields.String(description="Filename-safe language slug"),
    },
)

file_info_model = api.model(
    "FileInfo",
    {
        "name": fields.String(allow_null=True),
        "size": fields.Integer(description="Size in bytes", allow_null=True),
        "content_type": fields.String(allow_null=True),
        "duration": fields.Float(description="Duration in seconds", allow_null=True),
        "resolution": fields.String(description="WIDTHxHEIGHT", allow_null=True),
        "audio_tracks": fields.List(fields.Nested(audio_track_model), allow_null=True),
    },
)

stream_created_response = api.model(
    "StreamCreatedResponse",
    {
        "job_id": fields.String(description="Unique job identifier"),
        "status": fields.String(description="Initial job status", example="created"),
    },
)

job_status_response = api.model(
    "JobStatusResponse",
    {
        "job_id": fields.String(description="Job identifier"),
        "source_url": fields.String(description="Remote video URL"),
        "status": fields.String(
            description="Job status",
            enum=[
                "created", "analyzing", "analyzed", "downloading", "downloaded",
                "converting", "ready", "error", "cancelled",
            ],
        ),
        "progress": fields.Float(description="Overall progress (0-100)", min=0, max=100),
        "file_info": fields.Nested(file_info_model),
        "speed": fields.String(description="Download speed", allow_null=True),
        "eta": fields.String(description="Estimated download time remaining", allow_null=True),
        "message": fields.String(description="Error detail", allow_null=True),
        "error_category": fields.String(description="Error category if failed", allow_null=True),
        "stream_url": fields.String(description="Master playlist URL when ready", allow_null=True),
        "manifest_path": fields.String(allow_null=True),
        "created_at": fields.String(description="ISO timestamp"),
        "updated_at": fields.String(description="ISO timestamp"),
    },
)

video_stream_model = api.model(
    "VideoStream",
    {
        "index": fields.Integer(description="Position among the source video streams"),
        "codec": fields.String(),
        "width": fields.Integer(allow_null=True),
        "height": fields.Integer(allow_null=True),
        "pixel_format": fields.String(allow_null=True),
        "bitrate": fields.Integer(description="Bits per second", allow_null=True),
        "fps": fields.Float(allow_null=True),
    },
)

audio_stream_model = api.model(
    "AudioStream",
    {
        "index": fields.Integer(description="Position among the source audio streams"),
        "codec": fields.String(),
        "language": fields.String(),
        "title": fields.String(allow_null=True),
        "channels": fields.Integer(allow_null=True),
        "bitrate": fields.Integer(description="Bits per second", allow_null=True),
    },
)

subtitle_stream_model = api.model(
    "SubtitleStream",
    {
        "index": fields.Integer(description="Position among the source subtitle streams"),
        "codec": fields.String(),
        "language": fields.String(),
        "title": fields.String(allow_null=True),
    },
)

probe_response = api.model(
    "ProbeResponse",
    {
        "duration": fields.Float(description="Duration in seconds"),
        "resolution": fields.String(description="WIDTHxHEIGHT", allow_null=True),
        "video_streams": fields.List(fields.Nested(video_stream_model)),
        "audio_streams": fields.List(fields.Nested(audio_stream_model)),
        "subtitle_streams": fields.List(fields.Nested(subtitle_stream_model)),
        "audio_tracks": fields.List(
            fields.Nested(audio_track_model), description="Tracks a stream job would convert"
        ),
    },
)

cancel_response = api.model(
    "CancelResponse",
    {
        "success": fields.Boolean(),
        "job_id": fields.String(),
        "status": fields.String(),
    },
)

error_response = api.model(
    "ErrorResponse",
    {
        "error": fields.String(description="Error category"),
        "title": fields.String(description="Short error title"),
        "message": fields.String(description="User-facing error message"),
        "action": fields.String(description="Suggested action"),
    },
)
