"""
Redis Repository Base Class

JSON storage helpers and connection pooling shared by the Redis-backed
repositories.
"""

import json
import logging
from typing import Any, Dict, Iterator, Optional

import redis
from redis.exceptions import ConnectionError as RedisConnectionError

logger = logging.getLogger(__name__)


class RedisRepository:
    """Base Redis repository with JSON helpers and key prefixing."""

    def __init__(self, redis_client: redis.Redis, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def _make_key(self, key: str) -> str:
        """Create a prefixed key for Redis storage."""
        return f"{self.key_prefix}:{key}" if self.key_prefix else key

    def _strip_prefix(self, redis_key) -> str:
        if isinstance(redis_key, bytes):
            redis_key = redis_key.decode('utf-8')
        if self.key_prefix:
            return redis_key[len(self.key_prefix) + 1:]
        return redis_key

    def set_json(self, key: str, data: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """
        Set JSON data with optional TTL.

        Args:
            key: Redis key
            data: Dictionary to store as JSON
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        try:
            redis_key = self._make_key(key)
            json_data = json.dumps(data)

            if ttl:
                return bool(self.redis.setex(redis_key, ttl, json_data))
            return bool(self.redis.set(redis_key, json_data))
        except (RedisConnectionError, TypeError) as e:
            logger.error(f"Error setting JSON data for key {key}: {e}")
            return False

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get JSON data from Redis.

        Args:
            key: Redis key

        Returns:
            Dictionary if found and valid JSON, None otherwise
        """
        try:
            data = self.redis.get(self._make_key(key))
            if data is None:
                return None
            return json.loads(data)
        except (RedisConnectionError, json.JSONDecodeError) as e:
            logger.error(f"Error getting JSON data for key {key}: {e}")
            return None

    def delete(self, key: str) -> bool:
        """Delete a key, True if it existed."""
        try:
            return self.redis.delete(self._make_key(key)) > 0
        except RedisConnectionError as e:
            logger.error(f"Error deleting key {key}: {e}")
            return False

    def exists(self, key: str) -> bool:
        """Check if a key exists in Redis."""
        try:
            return self.redis.exists(self._make_key(key)) > 0
        except RedisConnectionError as e:
            logger.error(f"Error checking existence of key {key}: {e}")
            return False

    def scan_keys(self, pattern: str, count: int = 100) -> Iterator[str]:
        """
        Iterate over keys matching a pattern without blocking Redis.

        Args:
            pattern: Redis key pattern (supports wildcards)
            count: SCAN batch size hint

        Yields:
            Matching keys without the repository prefix
        """
        for redis_key in self.redis.scan_iter(match=self._make_key(pattern), count=count):
            yield self._strip_prefix(redis_key)


class RedisConnectionManager:
    """Manages Redis connection with connection pooling."""

    def __init__(self, host: str = 'localhost', port: int = 6379, db: int = 0,
                 max_connections: int = 20, password: Optional[str] = None):
        self.connection_pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            password=password,
            max_connections=max_connections,
            retry_on_timeout=True,
            socket_keepalive=True,
        )
        self._client = None

    @property
    def client(self) -> redis.Redis:
        """Get Redis client instance with connection pooling."""
        if self._client is None:
            self._client = redis.Redis(connection_pool=self.connection_pool)
        return self._client

    def health_check(self) -> bool:
        """Check if Redis connection is healthy."""
        try:
            return bool(self.client.ping())
        except RedisConnectionError:
            return False

    def close(self):
        """Close the connection pool."""
        if self.connection_pool:
            self.connection_pool.disconnect()
