"""
Unit tests for the dependency container.
"""

from unittest.mock import Mock

import pytest

from hlsbridge.application.dependency_container import (
    DependencyContainer,
    DependencyNotFoundError,
)
from hlsbridge.domain.job_management import JobStore


class Service:
    pass


class TestDependencyContainer:
    def test_singleton_is_shared(self):
        container = DependencyContainer()
        instance = Service()
        container.register_singleton(Service, instance)

        assert container.resolve(Service) is instance
        assert container.resolve(Service) is container.resolve(Service)

    def test_override_wins_over_singleton(self):
        container = DependencyContainer()
        real, fake = Service(), Service()
        container.register_singleton(Service, real)
        container.override(Service, fake)

        assert container.resolve(Service) is fake

    def test_unregistered_dependency(self):
        container = DependencyContainer()

        with pytest.raises(DependencyNotFoundError):
            container.resolve(Service)

    def test_setup_job_listeners_registers_each_listener(self, store: JobStore):
        container = DependencyContainer()
        first, second = Mock(), Mock()

        container.setup_job_listeners(store, [first, second])
        job = store.create_job("https://cdn.example.com/a.mkv")
        store.cancel_job(job.job_id)

        first.assert_called_once()
        second.assert_called_once()

    def test_listener_registration_failure_is_skipped(self):
        container = DependencyContainer()
        job_store = Mock()
        job_store.add_listener.side_effect = [RuntimeError("nope"), None]

        container.setup_job_listeners(job_store, [Mock(), Mock()])

        assert job_store.add_listener.call_count == 2
