"""Shared fixtures for bottleledger tests."""

import pytest
import pytest_asyncio

from bottleledger.ledger import DeliveryStore, LedgerService, PreferenceStore
from bottleledger.storage import InMemoryStorage, SQLiteStorage


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def storage(request, tmp_path):
    """Storage backend; tests using it run once per document backend."""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(path=tmp_path / "deliveries.db")
    yield backend
    await backend.close()


@pytest.fixture
def store(storage) -> DeliveryStore:
    return DeliveryStore(storage)


@pytest.fixture
def preferences(storage) -> PreferenceStore:
    return PreferenceStore(storage)


@pytest.fixture
def service(store, preferences) -> LedgerService:
    return LedgerService(store, preferences)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep a developer's BOTTLELEDGER_* variables out of the tests."""
    for name in (
        "BOTTLELEDGER_STORAGE_BACKEND",
        "BOTTLELEDGER_DB_PATH",
        "BOTTLELEDGER_REDIS_URL",
        "BOTTLELEDGER_REDIS_PREFIX",
        "BOTTLELEDGER_DEFAULT_RATE",
        "BOTTLELEDGER_LOG_LEVEL",
        "BOTTLELEDGER_JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)
