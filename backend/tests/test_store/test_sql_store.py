"""Store tests: SQL backend specifics and backend selection."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from ajl.config import Settings
from ajl.core.errors import StorageError
from ajl.schemas.instance import Instance
from ajl.store import Collection, DocumentStore, SqlStore, build_store, store_file


@pytest_asyncio.fixture
async def sql_store():
    store = SqlStore("sqlite+aiosqlite:///:memory:")
    await store.initialize()
    yield store
    await store.close()


def _instance(**overrides) -> Instance:
    fields = {
        "template_id": "t1",
        "year": 2026,
        "month": 3,
        "name_snapshot": "Rent",
        "amount": Decimal("1200.00"),
        "due_date": date(2026, 3, 1),
    }
    fields.update(overrides)
    return Instance(**fields)


@pytest.mark.asyncio
async def test_duplicate_month_instance_is_rejected(sql_store):
    """(template_id, year, month) is unique at the table level."""
    async with sql_store.transaction() as tx:
        await tx.put(Collection.instances, _instance())

    with pytest.raises(StorageError):
        async with sql_store.transaction() as tx:
            await tx.put(Collection.instances, _instance())

    async with sql_store.transaction() as tx:
        assert len(await tx.scan(Collection.instances)) == 1


@pytest.mark.asyncio
async def test_file_database_persists(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'ledger.sqlite'}"
    instance = _instance()

    first = SqlStore(url)
    await first.initialize()
    async with first.transaction() as tx:
        await tx.put(Collection.instances, instance)
    await first.close()

    second = SqlStore(url)
    await second.initialize()
    async with second.transaction() as tx:
        loaded = await tx.get(Collection.instances, instance.id)
    await second.close()
    assert loaded.due_date == date(2026, 3, 1)
    assert loaded.amount == Decimal("1200.00")


def test_build_store_selects_backend(tmp_path):
    document = build_store(
        Settings(store_backend="document", document_path=str(tmp_path / "ledger.json"))
    )
    assert isinstance(document, DocumentStore)

    sql = build_store(
        Settings(
            store_backend="sql",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'ledger.sqlite'}",
        )
    )
    assert isinstance(sql, SqlStore)
    assert (tmp_path / "nested").is_dir()


def test_store_file_follows_the_backend(tmp_path):
    document = Settings(store_backend="document", document_path=str(tmp_path / "ledger.json"))
    assert store_file(document) == tmp_path / "ledger.json"

    sql = Settings(store_backend="sql", database_url=f"sqlite+aiosqlite:///{tmp_path / 'l.sqlite'}")
    assert store_file(sql) == tmp_path / "l.sqlite"

    memory = Settings(store_backend="sql", database_url="sqlite+aiosqlite:///:memory:")
    assert store_file(memory) is None


def test_build_store_rejects_unknown_backend():
    with pytest.raises(ValueError):
        build_store(Settings(store_backend="redis"))
