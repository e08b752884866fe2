"""
Unit tests for the JobStore domain service.

Tests verify:
- Creation and lookup
- Monotonic progress and terminal stability through the store
- Cancellation semantics
- Subscriber fan-out and isolation
- Expiry sweep
"""

import threading
import time
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from hlsbridge.domain.job_management import (
    JobNotFoundError,
    JobStateError,
    JobStatus,
    JobStore,
)
from hlsbridge.infrastructure.in_memory_job_repository import InMemoryJobRepository
from tests.fixtures.builders import record_updates, status_path

URL = "https://cdn.example.com/movie.mkv"


def _advance(store: JobStore, job_id: str, *statuses: JobStatus) -> None:
    for status in statuses:
        store.update_job(job_id, status=status)


class TestJobLifecycle:
    def test_create_job_persists_snapshot(self, store):
        job = store.create_job(URL)

        stored = store.get_job(job.job_id)
        assert stored.job_id == job.job_id
        assert stored.status == JobStatus.CREATED

    def test_create_job_raises_when_save_fails(self):
        repo = Mock()
        repo.save.return_value = False

        with pytest.raises(RuntimeError, match="Failed to save job"):
            JobStore(repo).create_job(URL)

    def test_get_job_returns_detached_copies(self, store):
        job = store.create_job(URL)

        copy = store.get_job(job.job_id)
        copy.progress = 99

        assert store.get_job(job.job_id).progress == 0

    def test_require_job_raises_for_unknown_id(self, store):
        with pytest.raises(JobNotFoundError, match="missing"):
            store.require_job("missing")

    def test_update_unknown_job_returns_none(self, store):
        assert store.update_job("missing", progress=10) is None

    def test_invalid_transition_raises_job_state_error(self, store):
        job = store.create_job(URL)

        with pytest.raises(JobStateError):
            store.update_job(job.job_id, status=JobStatus.READY)
        assert store.get_job(job.job_id).status == JobStatus.CREATED


class TestMonotonicProgress:
    def test_progress_never_decreases(self, store):
        job = store.create_job(URL)

        for value in (10, 30, 20, 25, 50):
            store.update_job(job.job_id, progress=value)

        assert store.get_job(job.job_id).progress == 50

    def test_terminal_job_is_not_modified(self, store):
        job = store.create_job(URL)
        store.update_job(job.job_id, status=JobStatus.ERROR, message="boom")

        result = store.update_job(job.job_id, progress=80, message="later")

        assert result.status == JobStatus.ERROR
        assert result.message == "boom"
        assert result.progress == 0


class TestCancellation:
    def test_cancel_active_job(self, store):
        job = store.create_job(URL)
        _advance(store, job.job_id, JobStatus.ANALYZING)

        assert store.cancel_job(job.job_id) is True
        assert store.is_cancelled(job.job_id) is True

    def test_cancel_is_not_repeated(self, store):
        job = store.create_job(URL)
        store.cancel_job(job.job_id)

        assert store.cancel_job(job.job_id) is False

    def test_cancel_ready_job_is_refused(self, store):
        job = store.create_job(URL)
        _advance(
            store,
            job.job_id,
            JobStatus.ANALYZING,
            JobStatus.ANALYZED,
            JobStatus.DOWNLOADING,
            JobStatus.DOWNLOADED,
            JobStatus.CONVERTING,
            JobStatus.READY,
        )

        assert store.cancel_job(job.job_id) is False
        assert store.get_job(job.job_id).status == JobStatus.READY

    def test_cancel_unknown_job(self, store):
        assert store.cancel_job("missing") is False
        assert store.is_cancelled("missing") is False

    def test_late_updates_after_cancel_are_dropped(self, store):
        job = store.create_job(URL)
        _advance(store, job.job_id, JobStatus.ANALYZING, JobStatus.ANALYZED, JobStatus.DOWNLOADING)
        store.cancel_job(job.job_id)

        store.update_job(job.job_id, status=JobStatus.DOWNLOADING, progress=25)

        stored = store.get_job(job.job_id)
        assert stored.status == JobStatus.CANCELLED
        assert stored.progress == 0


class TestSubscriptions:
    def test_subscriber_receives_every_change(self, store):
        job = store.create_job(URL)
        updates = record_updates(store, job.job_id)

        _advance(store, job.job_id, JobStatus.ANALYZING, JobStatus.ANALYZED)
        store.cancel_job(job.job_id)

        assert status_path(updates) == ["analyzing", "analyzed", "cancelled"]

    def test_no_notification_for_ignored_updates(self, store):
        job = store.create_job(URL)
        store.cancel_job(job.job_id)
        updates = record_updates(store, job.job_id)

        store.update_job(job.job_id, progress=10)

        assert updates == []

    def test_subscribers_of_other_jobs_are_not_notified(self, store):
        first = store.create_job(URL)
        second = store.create_job(URL)
        updates = record_updates(store, second.job_id)

        store.update_job(first.job_id, progress=10)

        assert updates == []

    def test_unsubscribe_is_idempotent(self, store):
        job = store.create_job(URL)
        callback = Mock()
        unsubscribe = store.subscribe(job.job_id, callback)

        unsubscribe()
        unsubscribe()
        store.update_job(job.job_id, progress=5)

        callback.assert_not_called()
        assert store.registry.subscriber_count(job.job_id) == 0

    def test_failing_subscriber_does_not_break_update(self, store):
        job = store.create_job(URL)
        broken = Mock(side_effect=RuntimeError("observer down"))
        healthy = Mock()
        store.subscribe(job.job_id, broken)
        store.subscribe(job.job_id, healthy)

        result = store.update_job(job.job_id, progress=15)

        assert result.progress == 15
        healthy.assert_called_once()

    def test_concurrent_writers_are_delivered_in_store_order(self, store):
        job = store.create_job(URL)
        _advance(store, job.job_id, JobStatus.ANALYZING, JobStatus.ANALYZED)
        entered = threading.Event()

        def slow_subscriber(snapshot):
            if snapshot.status == JobStatus.DOWNLOADING:
                entered.set()
                time.sleep(0.3)

        store.subscribe(job.job_id, slow_subscriber)
        updates = record_updates(store, job.job_id)

        writer = threading.Thread(
            target=store.update_job, args=(job.job_id,), kwargs={"status": JobStatus.DOWNLOADING}
        )
        writer.start()
        assert entered.wait(5)
        canceller = threading.Thread(target=store.cancel_job, args=(job.job_id,))
        canceller.start()
        writer.join(5)
        canceller.join(5)

        assert status_path(updates) == ["downloading", "cancelled"]
        assert store.get_job(job.job_id).status == JobStatus.CANCELLED

    def test_listener_sees_all_jobs(self, store):
        listener = Mock()
        store.add_listener(listener)
        first = store.create_job(URL)
        second = store.create_job(URL)

        store.update_job(first.job_id, progress=1)
        store.update_job(second.job_id, progress=1)

        assert [c.args[0].job_id for c in listener.call_args_list] == [first.job_id, second.job_id]


class TestSweep:
    def test_sweep_removes_only_expired_jobs(self):
        repo = InMemoryJobRepository()
        store = JobStore(repo, retention=timedelta(hours=24))
        old = store.create_job(URL)
        fresh = store.create_job(URL)
        repo._jobs[old.job_id].created_at -= timedelta(hours=25)
        callback = Mock()
        store.subscribe(old.job_id, callback)

        removed = store.sweep_expired()

        assert removed == [old.job_id]
        assert store.get_job(old.job_id) is None
        assert store.get_job(fresh.job_id) is not None
        assert store.registry.subscriber_count(old.job_id) == 0

    def test_sweep_keeps_jobs_inside_retention(self, store):
        job = store.create_job(URL)

        removed = store.sweep_expired(now=datetime.utcnow() + timedelta(hours=23))

        assert removed == []
        assert store.get_job(job.job_id) is not None
