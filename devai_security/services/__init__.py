"""
Key-value collaborators for the security components.

``create_store`` picks Redis when a URL is configured and an in-memory
store otherwise.
"""

from typing import Optional

from devai_security.core.config import SecuritySettings, settings as default_settings
from .base_store import BaseStore, StoreResult
from .memory_store import InMemoryKeyValueStore
from .redis_store import RedisKeyValueStore, RedisConfig, create_redis_store


def create_store(settings: Optional[SecuritySettings] = None) -> BaseStore:
    """Create an initialized store according to ``settings``"""
    if settings is None:
        settings = default_settings
    if settings.REDIS_URL:
        return create_redis_store(settings.REDIS_URL)

    store = InMemoryKeyValueStore()
    store.initialize()
    return store


__all__ = [
    'BaseStore',
    'StoreResult',
    'InMemoryKeyValueStore',
    'RedisKeyValueStore',
    'RedisConfig',
    'create_redis_store',
    'create_store',
]
