import pytest
from pydantic import ValidationError

from coreason_cas_store.config import Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "CAS_STORE_CACHE_BACKEND",
        "CAS_STORE_REDIS_URL",
        "CAS_STORE_KEY_NAMESPACE",
        "CAS_STORE_SESSION_TTL_SECONDS",
        "CAS_STORE_PGT_IOU_TTL_SECONDS",
        "REDIS_URL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings()
    assert settings.cache_backend == "memory"
    assert settings.key_namespace is None
    assert settings.session_ttl_seconds == 7200
    assert settings.pgt_iou_ttl_seconds == 300
    assert settings.verify_reverse_pointers is False
    assert settings.redis_url is None


def test_env_var_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAS_STORE_CACHE_BACKEND", "redis")
    monkeypatch.setenv("CAS_STORE_KEY_NAMESPACE", "cas")
    monkeypatch.setenv("CAS_STORE_SESSION_TTL_SECONDS", "60")

    settings = Settings()
    assert settings.cache_backend == "redis"
    assert settings.key_namespace == "cas"
    assert settings.session_ttl_seconds == 60


def test_redis_url_fallback(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://fallback:6379/0")
    settings = Settings()
    assert settings.redis_url is not None
    assert settings.redis_url.get_secret_value() == "redis://fallback:6379/0"


def test_prefixed_redis_url_wins(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://fallback:6379/0")
    monkeypatch.setenv("CAS_STORE_REDIS_URL", "redis://primary:6379/1")
    settings = Settings()
    assert settings.redis_url is not None
    assert settings.redis_url.get_secret_value() == "redis://primary:6379/1"


def test_redis_url_is_masked(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REDIS_URL", "redis://:hunter2@cache:6379/0")
    settings = Settings()
    assert "hunter2" not in repr(settings)


def test_invalid_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAS_STORE_CACHE_BACKEND", "memcached")
    with pytest.raises(ValidationError):
        Settings()


def test_ttl_must_be_positive(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CAS_STORE_PGT_IOU_TTL_SECONDS", "0")
    with pytest.raises(ValidationError, match="positive"):
        Settings()


def test_validate_backend_requires_redis_url() -> None:
    settings = Settings(cache_backend="redis")
    with pytest.raises(ValueError, match="REDIS_URL is missing"):
        settings.validate_backend()


def test_validate_backend_memory_ok() -> None:
    Settings().validate_backend()
