"""
Violation Log Stores - Key-value persistence for serialized violation logs

Features:
- put() never raises; failures are reported as False and logged
- Redis backend for persistence across restarts
- In-process backend with an optional byte quota
"""
import time
import logging
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import redis

logger = logging.getLogger(__name__)


class LogStore(ABC):
    """Capability: put(key, serialized value) -> success flag"""

    @abstractmethod
    def put(self, key: str, value: str) -> bool:
        """Store value under key. Must not raise."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Read back a stored value, or None"""


class StoreQuotaExceeded(Exception):
    """Raised internally when a write would exceed the store quota"""


class MemoryLogStore(LogStore):
    """
    Dict-backed store.

    Usage:
        store = MemoryLogStore(max_bytes=5 * 1024 * 1024)
        store.put("examLogs", "[...]")
    """

    def __init__(self, max_bytes: Optional[int] = None):
        self.max_bytes = max_bytes
        self._data: Dict[str, str] = {}

    def _used_bytes(self, excluding: str) -> int:
        return sum(
            len(k.encode("utf-8")) + len(v.encode("utf-8"))
            for k, v in self._data.items() if k != excluding
        )

    def put(self, key: str, value: str) -> bool:
        try:
            if self.max_bytes is not None:
                needed = len(key.encode("utf-8")) + len(value.encode("utf-8"))
                if self._used_bytes(key) + needed > self.max_bytes:
                    raise StoreQuotaExceeded(
                        f"writing {needed} bytes to '{key}' exceeds quota of {self.max_bytes}"
                    )
            self._data[key] = value
            return True
        except Exception as e:
            logger.error(f"[STORE] PUT failed: {e}")
            return False

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)


class RedisLogStore(LogStore):
    """
    Redis-backed store.

    Usage:
        store = RedisLogStore("redis://localhost:6379/0")
        store.put("examLogs:EXM_1A2B3C", "[...]")
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        ttl: Optional[int] = None,
        retry_interval: float = 30.0
    ):
        """
        Initialize store.

        Args:
            redis_url: Redis connection URL
            ttl: Optional expiry in seconds for stored logs
            retry_interval: Seconds to wait after a failed connect before trying again
        """
        self.redis_url = redis_url
        self.ttl = ttl
        self.retry_interval = retry_interval
        self._client = None
        self._failed_at: Optional[float] = None

    @property
    def client(self) -> Optional[Any]:
        """Lazy load Redis client; connect failures are not retried until retry_interval passes"""
        if self._client is None:
            if self._failed_at is not None and time.monotonic() - self._failed_at < self.retry_interval:
                return None
            try:
                client = redis.from_url(self.redis_url, decode_responses=True)
                client.ping()
                self._client = client
                self._failed_at = None
                logger.info(f"[STORE] Connected to Redis: {self.redis_url}")
            except Exception as e:
                self._failed_at = time.monotonic()
                logger.error(f"[STORE] Redis connection failed, retrying in {self.retry_interval}s: {e}")
                return None
        return self._client

    def put(self, key: str, value: str) -> bool:
        client = self.client
        if client is None:
            return False
        try:
            if self.ttl:
                client.setex(key, self.ttl, value)
            else:
                client.set(key, value)
            logger.debug(f"[STORE] SET {key} ({len(value)} chars)")
            return True
        except Exception as e:
            logger.error(f"[STORE] SET failed: {e}")
            return False

    def get(self, key: str) -> Optional[str]:
        client = self.client
        if client is None:
            return None
        try:
            return client.get(key)
        except Exception as e:
            logger.error(f"[STORE] GET failed: {e}")
            return None


def create_log_store(backend: str, redis_url: str, max_bytes: Optional[int] = None) -> LogStore:
    """Build the configured store backend"""
    if backend == "redis":
        return RedisLogStore(redis_url)
    if backend == "memory":
        return MemoryLogStore(max_bytes=max_bytes)
    raise ValueError(f"Unknown log store backend: {backend}")
