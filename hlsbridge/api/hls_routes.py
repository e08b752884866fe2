"""
HLS Asset Routes

Serves finished job output (playlists, init segments, media segments) with
the content types and cache headers HLS players expect.
"""

import os

from flask import Blueprint, abort, current_app, send_from_directory

from hlsbridge.application.pipeline_service import INPUT_FILE_STEM

hls_bp = Blueprint("hls", __name__)

HLS_CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".m4s": "video/mp4",
    ".mp4": "video/mp4",
}

# Only fMP4 init segments are published as .mp4
INIT_SEGMENT_PREFIX = "init_"

# Playlists must be re-read by players, segments never change
PLAYLIST_CACHE_CONTROL = "no-cache"
SEGMENT_CACHE_CONTROL = "public, max-age=31536000"


def _is_published_asset(filename: str, extension: str) -> bool:
    stem = os.path.splitext(os.path.basename(filename))[0]
    if stem == INPUT_FILE_STEM:
        return False
    if extension == ".mp4":
        return os.path.basename(filename).startswith(INIT_SEGMENT_PREFIX)
    return extension in HLS_CONTENT_TYPES


@hls_bp.route("/hls/<string:job_id>/<path:filename>")
def serve_hls_asset(job_id: str, filename: str):
    """Serve one file from a job's output directory."""
    extension = os.path.splitext(filename)[1].lower()
    if not _is_published_asset(filename, extension):
        abort(404)

    output_root = current_app.config["HLS_OUTPUT_ROOT"]
    # send_from_directory rejects paths escaping output_root
    response = send_from_directory(
        output_root, f"{job_id}/{filename}", mimetype=HLS_CONTENT_TYPES[extension]
    )
    response.headers["Cache-Control"] = (
        PLAYLIST_CACHE_CONTROL if extension == ".m3u8" else SEGMENT_CACHE_CONTROL
    )
    return response
