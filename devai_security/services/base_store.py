# devai_security/services/base_store.py
"""
Base class for the durable key-value collaborator.

Every store backend inherits from BaseStore to get consistent:
- Lazy initialization
- Health checks
- Per-key locking for read-modify-write sequences
- Result-wrapped access that never raises into callers
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional, Dict, Any, TypeVar, Generic, Iterator
import logging
import threading

from devai_security.core.exceptions import StorageError, ConfigurationError

# Type variable for store configuration
ConfigType = TypeVar('ConfigType')


class StoreConfig:
    """Base configuration class for stores"""
    pass


@dataclass(frozen=True)
class StoreResult:
    """
    Outcome of a wrapped store call.

    ``value`` carries the read value for ``try_get``; ``error`` holds the
    exception that was absorbed, if any.
    """
    ok: bool
    value: Optional[str] = None
    error: Optional[Exception] = None


class BaseStore(ABC, Generic[ConfigType]):
    """
    Abstract key-value store holding string values.

    Provides:
    - Lazy initialization pattern
    - Health check interface
    - ``try_*`` wrappers that convert failures into StoreResult
    - ``lock(name)`` for serializing updates of one key
    """

    def __init__(
        self,
        config: Optional[ConfigType] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the store.

        Args:
            config: Backend-specific configuration
            logger: Optional logger instance
        """
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self._initialized = False
        self._client = None

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

        self.store_name = self.__class__.__name__

    @abstractmethod
    def _initialize_client(self) -> Any:
        """
        Create the underlying client/connection.

        Returns:
            The initialized client, or None when the backend is disabled

        Raises:
            ConfigurationError: If configuration is invalid
        """
        pass

    def initialize(self) -> None:
        """
        Initialize the store (lazy loading pattern).

        Idempotent - multiple calls are safe.
        """
        if self._initialized:
            self.logger.debug(f"{self.store_name} already initialized")
            return

        try:
            self.logger.info(f"Initializing {self.store_name}...")
            self._validate_config()
            self._client = self._initialize_client()
            self._initialized = True
            self.logger.info(f"{self.store_name} initialized successfully")

        except ConfigurationError:
            raise
        except Exception as e:
            error_msg = f"Failed to initialize {self.store_name}"
            self.logger.error(error_msg, exc_info=True)
            raise StorageError(
                error_msg,
                operation="initialize",
                details={'original_error': str(e), 'error_type': type(e).__name__}
            )

    def _validate_config(self) -> None:
        """
        Validate store configuration.

        Override to add backend-specific validation.
        """
        if self.config is None:
            self.logger.debug(f"No configuration provided for {self.store_name}")

    def ensure_initialized(self) -> None:
        if not self._initialized:
            self.initialize()

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Raw access - may raise StorageError
    # ------------------------------------------------------------------

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored string for ``key`` or None"""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value"""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; removing a missing key is not an error"""
        pass

    @abstractmethod
    def health_check(self) -> Dict[str, Any]:
        """
        Perform a health check on the store.

        Returns:
            Dict containing:
            - healthy: bool indicating if store is usable
            - status: string status message
            - details: optional additional information
        """
        pass

    # ------------------------------------------------------------------
    # Result-wrapped access - never raises
    # ------------------------------------------------------------------

    def try_get(self, key: str) -> StoreResult:
        try:
            self.ensure_initialized()
            return StoreResult(ok=True, value=self.get(key))
        except Exception as e:
            self.logger.warning(f"{self.store_name} get failed for key '{key}': {e}")
            return StoreResult(ok=False, error=e)

    def try_set(self, key: str, value: str) -> StoreResult:
        try:
            self.ensure_initialized()
            self.set(key, value)
            return StoreResult(ok=True)
        except Exception as e:
            self.logger.warning(f"{self.store_name} set failed for key '{key}': {e}")
            return StoreResult(ok=False, error=e)

    def try_remove(self, key: str) -> StoreResult:
        try:
            self.ensure_initialized()
            self.remove(key)
            return StoreResult(ok=True)
        except Exception as e:
            self.logger.warning(f"{self.store_name} remove failed for key '{key}': {e}")
            return StoreResult(ok=False, error=e)

    @contextmanager
    def lock(self, name: str) -> Iterator[bool]:
        """
        Serialize a read-modify-write sequence on ``name``.

        Yields True once the lock is held. The base implementation only
        serializes threads of this process.
        """
        with self._locks_guard:
            key_lock = self._locks.setdefault(name, threading.Lock())
        with key_lock:
            yield True

    def shutdown(self) -> None:
        """Release the backend connection"""
        if not self._initialized:
            return

        try:
            self.logger.info(f"Shutting down {self.store_name}...")
            self._cleanup()
            self._client = None
            self._initialized = False
            self.logger.info(f"{self.store_name} shut down successfully")

        except Exception:
            self.logger.error(f"Error during {self.store_name} shutdown", exc_info=True)

    def _cleanup(self) -> None:
        """Backend-specific cleanup logic"""
        pass

    def get_metrics(self) -> Dict[str, Any]:
        return {
            "store_name": self.store_name,
            "initialized": self._initialized,
            "locked_keys": len(self._locks),
        }
