# devai_security/services/redis_store.py
"""
Redis-backed key-value store.

Sync wrapper around redis-py with:
- Configuration from settings or explicit RedisConfig
- Optional TTL on every written key
- Redis locks so cooperating processes serialize per-key updates
- Health checks
"""
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, Dict, Any, Iterator
import logging

import redis

from devai_security.services.base_store import BaseStore, StoreConfig
from devai_security.core.exceptions import StorageError, storage_error, config_error

logger = logging.getLogger(__name__)


@dataclass
class RedisConfig(StoreConfig):
    """Configuration for the Redis store"""
    url: Optional[str] = None
    decode_responses: bool = True
    socket_timeout: float = 5.0
    max_connections: int = 10
    retry_on_timeout: bool = True
    health_check_interval: int = 30
    key_ttl: Optional[int] = None          # seconds, None keeps keys forever
    lock_prefix: str = "lock:"
    lock_timeout: float = 5.0              # auto-release after crash
    lock_blocking_timeout: float = 2.0


class RedisKeyValueStore(BaseStore[RedisConfig]):
    """
    Key-value store on top of a Redis server.

    When no URL is configured, or the server cannot be reached, the store
    initializes in a disconnected state and every operation raises
    StorageError, which the ``try_*`` wrappers absorb.
    """

    def __init__(self, config: Optional[RedisConfig] = None):
        """
        Initialize Redis store.

        Args:
            config: Redis configuration. If not provided, REDIS_URL is used.
        """
        if config is None:
            config = RedisConfig(url=os.environ.get("REDIS_URL"))

        super().__init__(config, logger)

    def _validate_config(self) -> None:
        super()._validate_config()

        if not self.config.url:
            self.logger.warning(
                "No Redis URL configured. Redis store will stay disconnected."
            )

        if self.config.key_ttl is not None and self.config.key_ttl <= 0:
            raise config_error("key_ttl must be a positive number of seconds", component=self.store_name)

    def _initialize_client(self) -> Optional[redis.Redis]:
        if not self.config.url:
            return None

        try:
            client = redis.from_url(
                self.config.url,
                decode_responses=self.config.decode_responses,
                socket_timeout=self.config.socket_timeout,
                max_connections=self.config.max_connections,
                retry_on_timeout=self.config.retry_on_timeout,
                health_check_interval=self.config.health_check_interval
            )

            client.ping()
            self.logger.info("Redis connection successful")
            return client

        except Exception as e:
            self.logger.error(f"Failed to connect to Redis: {e}")
            self.logger.warning("Redis store disabled due to connection error")
            return None

    def _require_client(self, key: str, operation: str) -> redis.Redis:
        self.ensure_initialized()
        if self._client is None:
            raise storage_error("Redis is not connected", key=key, operation=operation)
        return self._client

    def get(self, key: str) -> Optional[str]:
        client = self._require_client(key, "get")
        try:
            value = client.get(key)
        except redis.RedisError as e:
            raise StorageError(f"Redis get failed: {e}", key=key, operation="get")

        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        client = self._require_client(key, "set")
        try:
            if self.config.key_ttl:
                client.setex(key, self.config.key_ttl, value)
            else:
                client.set(key, value)
        except redis.RedisError as e:
            raise StorageError(f"Redis set failed: {e}", key=key, operation="set")

    def remove(self, key: str) -> None:
        client = self._require_client(key, "remove")
        try:
            client.delete(key)
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed: {e}", key=key, operation="remove")

    @contextmanager
    def lock(self, name: str) -> Iterator[bool]:
        """
        Hold a Redis lock on ``name`` for the duration of the block.

        Falls back to the in-process lock while disconnected. If the Redis
        lock cannot be acquired in time the block still runs, yielding False;
        callers that must not race decide what to do then.
        """
        self.ensure_initialized()
        if not self.is_connected():
            with super().lock(name) as held:
                yield held
            return

        redis_lock = self._client.lock(
            f"{self.config.lock_prefix}{name}",
            timeout=self.config.lock_timeout,
            blocking_timeout=self.config.lock_blocking_timeout
        )

        acquired = False
        try:
            acquired = redis_lock.acquire()
        except redis.RedisError as e:
            self.logger.warning(f"Redis lock error for '{name}': {e}")

        if not acquired:
            self.logger.warning(f"Redis lock not acquired for '{name}'")

        try:
            yield acquired
        finally:
            if acquired:
                try:
                    redis_lock.release()
                except redis.RedisError as e:
                    # lock expired before release
                    self.logger.warning(f"Redis lock release failed for '{name}': {e}")

    def health_check(self) -> Dict[str, Any]:
        if not self.config.url:
            return {
                "healthy": False,
                "status": "disabled",
                "details": {
                    "message": "Redis not configured"
                }
            }

        if not self._client:
            return {
                "healthy": False,
                "status": "not_connected",
                "details": {
                    "error": "Client not initialized"
                }
            }

        try:
            self._client.ping()
            info = self._client.info()

            return {
                "healthy": True,
                "status": "connected",
                "details": {
                    "redis_version": info.get("redis_version", "unknown"),
                    "connected_clients": info.get("connected_clients", 0),
                    "used_memory_human": info.get("used_memory_human", "unknown")
                }
            }

        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "details": {
                    "error": str(e)
                }
            }

    def _cleanup(self) -> None:
        if self._client:
            try:
                self._client.close()
            except Exception as e:
                self.logger.warning(f"Error closing Redis client: {e}")

    def is_connected(self) -> bool:
        """Check if Redis is connected and available"""
        return self._client is not None


def create_redis_store(url: Optional[str] = None, **kwargs) -> RedisKeyValueStore:
    """
    Create and initialize a Redis store.

    Args:
        url: Redis URL (falls back to REDIS_URL if not provided)
        **kwargs: Additional RedisConfig parameters
    """
    config = RedisConfig(url=url or os.environ.get("REDIS_URL"), **kwargs)
    store = RedisKeyValueStore(config)
    store.initialize()
    return store
