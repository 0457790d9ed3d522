from typing import Generator

import pytest
from fastapi.testclient import TestClient

from coreason_cas_store.main import TicketStore
from coreason_cas_store.server import app
from tests.conftest import SpyCache


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> Generator[TestClient, None, None]:
    monkeypatch.setenv("CAS_STORE_CACHE_BACKEND", "memory")
    with TestClient(app) as c:
        yield c


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "backend": "memory"}


def test_health_not_initialized(client: TestClient) -> None:
    del client.app.state.ticket_store  # type: ignore[attr-defined]
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["detail"] == "Ticket store not initialized"


def test_proxy_callback_probe(client: TestClient) -> None:
    response = client.get("/cas/proxy_callback")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_proxy_callback_stores_pgt(client: TestClient) -> None:
    response = client.get("/cas/proxy_callback", params={"pgtIou": "iou-123", "pgtId": "PGT-9"})

    assert response.status_code == 200
    assert response.json() == {"status": "stored"}
    ticket_store: TicketStore = client.app.state.ticket_store  # type: ignore[attr-defined]
    assert ticket_store.retrieve_pgt("iou-123") == "PGT-9"


@pytest.mark.parametrize("params", [{"pgtIou": "iou-123"}, {"pgtId": "PGT-9"}])
def test_proxy_callback_partial_parameters(client: TestClient, params: dict) -> None:
    response = client.get("/cas/proxy_callback", params=params)
    assert response.status_code == 400
    assert response.json()["detail"] == "Both pgtIou and pgtId are required"


def test_proxy_callback_fail_closed(client: TestClient) -> None:
    """A rejected write is reported as 500 rather than acknowledged."""
    spy_cache = SpyCache()
    spy_cache.reject_prefixes = ["pgtiou:"]
    client.app.state.ticket_store = TicketStore(spy_cache)  # type: ignore[attr-defined]

    response = client.get("/cas/proxy_callback", params={"pgtIou": "iou-123", "pgtId": "PGT-9"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Unable to store proxy-granting ticket"
