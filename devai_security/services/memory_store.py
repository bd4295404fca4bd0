# devai_security/services/memory_store.py
"""In-process key-value store, the default for tests and single-process callers."""

from typing import Any, Dict, List, Optional
import logging

from devai_security.services.base_store import BaseStore, StoreConfig

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(BaseStore[StoreConfig]):
    """Dict-backed store. Contents live as long as the instance."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(None, logger)
        self._data: Dict[str, str] = dict(initial or {})

    def _initialize_client(self) -> Dict[str, str]:
        return self._data

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> List[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def health_check(self) -> Dict[str, Any]:
        return {
            "healthy": True,
            "status": "in_memory",
            "details": {"keys": len(self._data)}
        }
