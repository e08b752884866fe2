"""
Fixtures for the API tests: an application from the real factory whose job
service uses an in-memory store and a mocked dispatcher.
"""

from unittest.mock import Mock

import pytest

from hlsbridge.app_factory import AppConfig, create_app
from hlsbridge.application.job_service import JobService


@pytest.fixture
def app_config(tmp_path):
    config = AppConfig()
    config.pipeline.output_root = str(tmp_path)
    return config


@pytest.fixture
def dispatcher():
    return Mock()


@pytest.fixture
def app(app_config, store, dispatcher, tmp_path):
    app = create_app(app_config)
    app.config["TESTING"] = True
    app.job_service = JobService(store, dispatcher, output_root=str(tmp_path))
    return app


@pytest.fixture
def client(app):
    return app.test_client()
