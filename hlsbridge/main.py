"""
main.py

Flask backend serving the stream API, Socket.IO live updates and the HLS
output.

Dependencies:
  - Python packages: Flask, flask-restx, flask-socketio, yt-dlp, redis, celery
  - System: ffmpeg and ffprobe on PATH (or FFMPEG_BINARY / FFPROBE_BINARY)
  - Infrastructure: Redis server when JOB_STORE_BACKEND=redis

Notes:
  - API v1 endpoints at /api/v1/ with Swagger docs at /api/v1/docs
  - With JOB_STORE_BACKEND=memory (default) pipelines run on threads of this process
  - With JOB_STORE_BACKEND=redis pipelines run on Celery workers and Socket.IO
    serves on monkey-patched gevent; the memory store serves on threads
"""

import os

if (
    os.getenv("JOB_STORE_BACKEND", "memory").lower() == "redis"
    and os.getenv("SOCKETIO_ASYNC_MODE", "gevent") == "gevent"
):
    # Must run before anything imports socket, ssl or threading
    from gevent import monkey

    monkey.patch_all()

import logging  # noqa: E402

from hlsbridge.app_factory import create_app  # noqa: E402
from hlsbridge.config.socketio_config import get_socketio, is_socketio_enabled  # noqa: E402

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = create_app()


def main() -> None:
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    if is_socketio_enabled():
        get_socketio().run(app, host=host, port=port, debug=debug, allow_unsafe_werkzeug=True)
    else:
        app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
