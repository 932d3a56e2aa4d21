"""Shared test fixtures: in-memory stores, a ledger with a fixed clock, test client."""

from datetime import date

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ajl.dependencies import get_ledger
from ajl.main import app
from ajl.services.ledger import Ledger
from ajl.store import DocumentStore, SqlStore, Store

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Every ledger in the suite believes today is this date.
TODAY = date(2026, 3, 15)


@pytest_asyncio.fixture(params=["sql", "document"])
async def store(request) -> Store:
    """Each store-backed test runs once per backend."""
    if request.param == "sql":
        backend = SqlStore(TEST_DATABASE_URL)
    else:
        backend = DocumentStore()
    await backend.initialize()
    yield backend
    await backend.close()


@pytest_asyncio.fixture
async def ledger(store: Store) -> Ledger:
    return Ledger(store, today=lambda: TODAY)


@pytest_asyncio.fixture
async def client(ledger: Ledger) -> AsyncClient:
    """Yield an httpx AsyncClient wired to the test ledger."""
    app.dependency_overrides[get_ledger] = lambda: ledger
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
