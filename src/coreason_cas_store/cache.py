# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cas_store

"""
Key-value cache backends for the CAS ticket store.

The ticket store only needs per-key get/set/delete with an optional TTL. This module
defines that contract (KeyValueCache), an in-process backend built on cachetools and a
Redis backend, plus the process-wide client handle used by the composition root.
"""

import math
import threading
import time
from typing import Any, Callable, Optional, Protocol, Tuple, runtime_checkable

import redis
from cachetools import TLRUCache

from coreason_cas_store.config import Settings
from coreason_cas_store.exceptions import CacheBackendError
from coreason_cas_store.utils.logger import logger


@runtime_checkable
class KeyValueCache(Protocol):
    """
    The minimal cache contract: each call is atomic for its key, nothing spans keys.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool: ...

    def delete(self, key: str) -> None: ...


@runtime_checkable
class SupportsPop(Protocol):
    """A cache that can read and delete a key in one atomic step."""

    def pop(self, key: str) -> Optional[str]: ...


def _time_to_use(_key: str, value: Tuple[str, Optional[int]], now: float) -> float:
    ttl = value[1]
    if ttl is None:
        return math.inf
    return now + ttl


class MemoryKeyValueCache:
    """
    In-process backend using a cachetools TLRUCache so every key carries its own TTL.

    Suitable for a single process (development, tests). Entries are hidden once expired
    and the least recently used entry is evicted when max_size is reached.
    """

    name = "memory"

    def __init__(
        self,
        max_size: int = 10000,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initializes the MemoryKeyValueCache.

        Args:
            max_size: Maximum number of keys held. Default 10000.
            timer: Timer function for TTL. Defaults to time.monotonic.
        """
        self._storage: TLRUCache[str, Tuple[str, Optional[int]]] = TLRUCache(
            maxsize=max_size, ttu=_time_to_use, timer=timer
        )
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._storage.get(key)
        return entry[0] if entry is not None else None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        with self._lock:
            self._storage[key] = (value, ttl)
        return True

    def delete(self, key: str) -> None:
        with self._lock:
            self._storage.pop(key, None)

    def pop(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._storage.pop(key, None)
        return entry[0] if entry is not None else None

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._storage


class RedisKeyValueCache:
    """
    Redis backend. Values are stored as plain strings with `SET key value EX ttl`.
    """

    name = "redis"

    def __init__(self, client: "redis.Redis[Any]") -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 5.0) -> "RedisKeyValueCache":
        """
        Builds the backend from a redis:// URL.

        The connection pool is created lazily by redis-py, so no network call happens here.
        """
        client = redis.Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout,
        )
        return cls(client)

    @property
    def client(self) -> "redis.Redis[Any]":
        return self._client

    def get(self, key: str) -> Optional[str]:
        try:
            return self._decode(self._client.get(key))
        except redis.RedisError as e:
            logger.error(f"Redis GET failed for {key.split(':', 1)[0]} key: {e}")
            raise CacheBackendError(f"Redis GET failed: {e}") from e

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        try:
            return bool(self._client.set(key, value, ex=ttl))
        except redis.RedisError as e:
            logger.error(f"Redis SET failed for {key.split(':', 1)[0]} key: {e}")
            raise CacheBackendError(f"Redis SET failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Redis DEL failed for {key.split(':', 1)[0]} key: {e}")
            raise CacheBackendError(f"Redis DEL failed: {e}") from e

    def pop(self, key: str) -> Optional[str]:
        """
        Atomic read-and-delete.

        Uses GETDEL (Redis 6.2+). Older servers reject the command, in which case GET and DEL
        run inside a MULTI/EXEC transaction instead.
        """
        try:
            return self._decode(self._client.getdel(key))
        except redis.ResponseError:
            return self._pop_in_transaction(key)
        except redis.RedisError as e:
            logger.error(f"Redis GETDEL failed for {key.split(':', 1)[0]} key: {e}")
            raise CacheBackendError(f"Redis GETDEL failed: {e}") from e

    def _pop_in_transaction(self, key: str) -> Optional[str]:
        try:
            pipe = self._client.pipeline(transaction=True)
            pipe.get(key)
            pipe.delete(key)
            raw, _ = pipe.execute()
        except redis.RedisError as e:
            logger.error(f"Redis GET/DEL transaction failed for {key.split(':', 1)[0]} key: {e}")
            raise CacheBackendError(f"Redis GET/DEL transaction failed: {e}") from e
        return self._decode(raw)

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError as e:
            raise CacheBackendError(f"Redis PING failed: {e}") from e

    @staticmethod
    def _decode(raw: Any) -> Optional[str]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return str(raw)


def build_cache(settings: Settings) -> KeyValueCache:
    """
    Builds a fresh cache backend from settings.

    Raises:
        ValueError: If the settings select Redis without a URL.
    """
    settings.validate_backend()
    if settings.cache_backend == "redis" and settings.redis_url is not None:
        return RedisKeyValueCache.from_url(
            settings.redis_url.get_secret_value(), socket_timeout=settings.redis_socket_timeout
        )
    return MemoryKeyValueCache(max_size=settings.memory_max_size)


_CACHE_CLIENT: Optional[KeyValueCache] = None
_CACHE_LOCK = threading.Lock()


def get_cache_client(settings: Optional[Settings] = None) -> KeyValueCache:
    """
    Retrieves the process-wide cache client, building it on first use.

    Concurrent first callers are serialized so the client is constructed exactly once.
    Settings passed after the client exists are ignored.

    Returns:
        The shared KeyValueCache instance.

    Raises:
        RuntimeError: If the backend cannot be built.
    """
    global _CACHE_CLIENT
    if _CACHE_CLIENT is None:
        with _CACHE_LOCK:
            if _CACHE_CLIENT is None:
                active = settings or Settings()
                try:
                    logger.info(f"Initializing {active.cache_backend} cache client...")
                    _CACHE_CLIENT = build_cache(active)
                    logger.info("Cache client initialized successfully.")
                except Exception as e:
                    logger.critical(f"Failed to initialize cache client: {e}")
                    raise RuntimeError(f"Cache client initialization failed: {e}") from e
    return _CACHE_CLIENT


def reset_cache_client() -> None:
    """Drops the shared client so the next get_cache_client call builds a new one."""
    global _CACHE_CLIENT
    with _CACHE_LOCK:
        _CACHE_CLIENT = None
