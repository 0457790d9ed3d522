from typing import Generator, List, Optional, Tuple

import pytest
from loguru import logger

from coreason_cas_store.cache import MemoryKeyValueCache, reset_cache_client
from coreason_cas_store.config import Settings
from coreason_cas_store.main import TicketStore
from coreason_cas_store.models import StaticRequestContext


class SpyCache(MemoryKeyValueCache):
    """MemoryKeyValueCache that records every write and can be told to reject them."""

    def __init__(self) -> None:
        super().__init__()
        self.set_calls: List[Tuple[str, str, Optional[int]]] = []
        self.delete_calls: List[str] = []
        self.reject_prefixes: List[str] = []

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        self.set_calls.append((key, value, ttl))
        if any(key.startswith(prefix) for prefix in self.reject_prefixes):
            return False
        return super().set(key, value, ttl)

    def delete(self, key: str) -> None:
        self.delete_calls.append(key)
        super().delete(key)


@pytest.fixture
def spy_cache() -> SpyCache:
    return SpyCache()


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    for name in ("CAS_STORE_CACHE_BACKEND", "CAS_STORE_KEY_NAMESPACE", "CAS_STORE_VERIFY_REVERSE_POINTERS"):
        monkeypatch.delenv(name, raising=False)
    return Settings()


@pytest.fixture
def store(spy_cache: SpyCache, settings: Settings) -> TicketStore:
    return TicketStore(spy_cache, settings)


@pytest.fixture
def context() -> StaticRequestContext:
    return StaticRequestContext(session_id="sess-A")


@pytest.fixture(autouse=True)
def fresh_cache_client() -> Generator[None, None, None]:
    reset_cache_client()
    yield
    reset_cache_client()


@pytest.fixture
def log_sink() -> Generator[List[str], None, None]:
    logs: List[str] = []
    handler_id = logger.add(lambda msg: logs.append(msg.record["message"]), level="DEBUG")
    yield logs
    logger.remove(handler_id)
