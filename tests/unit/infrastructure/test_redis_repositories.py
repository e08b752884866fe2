"""
Unit tests for the Redis repositories, against a mocked redis client.
"""

import json
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hlsbridge.domain.job_management import JobStatus, StreamJob
from hlsbridge.infrastructure.redis_job_repository import RedisJobRepository
from hlsbridge.infrastructure.redis_repository import RedisRepository


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def job():
    return StreamJob.create("https://cdn.example.com/movie.mkv")


class TestRedisRepository:
    def test_set_json_with_ttl(self, client):
        client.setex.return_value = True

        assert RedisRepository(client, key_prefix="app").set_json("k", {"a": 1}, ttl=60)

        client.setex.assert_called_once_with("app:k", 60, '{"a": 1}')

    def test_get_json(self, client):
        client.get.return_value = b'{"a": 1}'

        assert RedisRepository(client).get_json("k") == {"a": 1}

    def test_invalid_json_reads_as_missing(self, client):
        client.get.return_value = b"{broken"

        assert RedisRepository(client).get_json("k") is None

    def test_connection_errors_are_reported_as_failure(self, client):
        client.set.side_effect = RedisConnectionError("down")
        client.delete.side_effect = RedisConnectionError("down")

        repo = RedisRepository(client)

        assert repo.set_json("k", {}) is False
        assert repo.delete("k") is False

    def test_scan_keys_strips_prefix(self, client):
        client.scan_iter.return_value = [b"app:job:1", "app:job:2"]

        keys = list(RedisRepository(client, key_prefix="app").scan_keys("job:*"))

        assert keys == ["job:1", "job:2"]
        client.scan_iter.assert_called_once_with(match="app:job:*", count=100)


class TestRedisJobRepository:
    def _transaction_with(self, client, stored):
        pipe = MagicMock()
        pipe.get.return_value = stored
        client.transaction.side_effect = lambda func, *keys: func(pipe)
        return pipe

    def test_save_uses_ttl(self, client, job):
        repo = RedisJobRepository(RedisRepository(client), ttl=120)

        repo.save(job)

        key, ttl, payload = client.setex.call_args[0]
        assert key == f"job:{job.job_id}"
        assert ttl == 120
        assert json.loads(payload)["job_id"] == job.job_id

    def test_get_round_trips_job(self, client, job):
        client.get.return_value = json.dumps(job.to_dict())

        loaded = RedisJobRepository(RedisRepository(client)).get(job.job_id)

        assert loaded.job_id == job.job_id
        assert loaded.status == JobStatus.CREATED

    def test_update_writes_inside_transaction(self, client, job):
        pipe = self._transaction_with(client, json.dumps(job.to_dict()))
        repo = RedisJobRepository(RedisRepository(client), ttl=120)

        updated, changed = repo.update(
            job.job_id, lambda j: j.apply_update(status=JobStatus.ANALYZING)
        )

        assert changed
        assert updated.status == JobStatus.ANALYZING
        client.transaction.assert_called_once()
        assert client.transaction.call_args[0][1] == f"job:{job.job_id}"
        pipe.multi.assert_called_once()
        key, payload = pipe.set.call_args[0]
        assert key == f"job:{job.job_id}"
        assert json.loads(payload)["status"] == "analyzing"
        assert pipe.set.call_args[1] == {"ex": 120}

    def test_unchanged_job_is_not_written(self, client, job):
        job.apply_update(status=JobStatus.CANCELLED)
        pipe = self._transaction_with(client, json.dumps(job.to_dict()))

        updated, changed = RedisJobRepository(RedisRepository(client)).update(
            job.job_id, lambda j: j.apply_update(progress=50)
        )

        assert not changed
        assert updated.status == JobStatus.CANCELLED
        pipe.multi.assert_not_called()
        pipe.set.assert_not_called()

    def test_update_missing_job(self, client):
        self._transaction_with(client, None)

        assert RedisJobRepository(RedisRepository(client)).update("missing", lambda j: True) is None

    def test_list_created_before(self, client):
        old = StreamJob.create("https://cdn.example.com/old.mkv")
        old.created_at -= timedelta(days=2)
        fresh = StreamJob.create("https://cdn.example.com/new.mkv")
        stored = {
            f"job:{old.job_id}": json.dumps(old.to_dict()),
            f"job:{fresh.job_id}": json.dumps(fresh.to_dict()),
        }
        client.scan_iter.return_value = [key.encode() for key in stored] + [b"job:vanished"]
        client.get.side_effect = lambda key: stored.get(key)

        repo = RedisJobRepository(RedisRepository(client))

        assert repo.list_created_before(fresh.created_at - timedelta(days=1)) == [old.job_id]
