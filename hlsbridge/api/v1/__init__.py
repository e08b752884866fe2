"""
API v1 - HLS Bridge REST API

This module contains the versioned API endpoints with OpenAPI/Swagger documentation.
"""

import os

from flask import Blueprint
from flask_restx import Api

API_VERSION = os.getenv("API_VERSION", "v1")

api_v1_bp = Blueprint("api_v1", __name__, url_prefix=f"/api/{API_VERSION}")

# Swagger UI is served at /api/v1/docs
api = Api(
    api_v1_bp,
    version="1.0",
    title="HLS Bridge API",
    description="Convert remote video files into HLS streams with selectable audio tracks",
    doc="/docs",
)

# Import namespaces after api is created to avoid circular imports
from .namespaces import stream_ns  # noqa: E402

api.add_namespace(stream_ns, path="/streams")
