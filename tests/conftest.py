"""
Shared pytest fixtures and configuration for the hlsbridge test suite.

This module provides:
- Hypothesis profiles for property-based testing
- Environment defaults so the app factory never needs Redis or ffmpeg
- Shared fixtures for job stores and fake collaborators
"""

import os
import tempfile

import pytest
from hypothesis import HealthCheck, settings

# Must be set before hlsbridge.config modules read the environment
os.environ.setdefault("JOB_STORE_BACKEND", "memory")
os.environ.setdefault("SOCKETIO_ENABLED", "false")
os.environ.setdefault("JOB_SWEEPER_ENABLED", "false")
os.environ.setdefault("HLS_OUTPUT_ROOT", os.path.join(tempfile.gettempdir(), "hlsbridge-tests"))

from hlsbridge.domain.job_management import JobStore  # noqa: E402

from tests.fixtures.builders import make_store  # noqa: E402
from tests.fixtures.fakes import FakeFetcher, FakeProber, FakeTranscoder  # noqa: E402

settings.register_profile(
    "default",
    max_examples=100,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "ci",
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


@pytest.fixture
def store() -> JobStore:
    """Job store over a fresh in-memory repository."""
    return make_store()


@pytest.fixture
def sample_url() -> str:
    return "https://cdn.example.com/media/movie.mkv"


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def transcoder() -> FakeTranscoder:
    return FakeTranscoder()
