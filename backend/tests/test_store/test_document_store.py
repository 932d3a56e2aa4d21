"""Store tests: document snapshot persistence, recovery and quota."""

import json
import logging
from decimal import Decimal

import pytest

from ajl.core.errors import StorageError
from ajl.schemas.template import Template
from ajl.store import Collection, DocumentStore
from ajl.store.document import decode_snapshot


def _template(name: str = "Rent") -> Template:
    return Template(name=name, amount_default=Decimal("1200.00"), due_day=1)


@pytest.mark.asyncio
async def test_snapshot_survives_restart(tmp_path):
    path = tmp_path / "ledger.json"
    template = _template()

    first = DocumentStore(path)
    await first.initialize()
    async with first.transaction() as tx:
        await tx.put(Collection.templates, template)
    await first.close()

    second = DocumentStore(path)
    await second.initialize()
    async with second.transaction() as tx:
        loaded = await tx.get(Collection.templates, template.id)
    assert loaded.name == "Rent"
    assert loaded.amount_default == Decimal("1200.00")
    assert second.recovered_from is None


@pytest.mark.asyncio
async def test_commit_leaves_no_temp_file(tmp_path):
    path = tmp_path / "ledger.json"
    store = DocumentStore(path)
    await store.initialize()
    async with store.transaction() as tx:
        await tx.put(Collection.templates, _template())

    assert path.exists()
    assert not (tmp_path / "ledger.json.tmp").exists()
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["version"] == 1
    assert len(doc["collections"]["templates"]) == 1


@pytest.mark.asyncio
async def test_read_only_transaction_does_not_write(tmp_path):
    path = tmp_path / "ledger.json"
    store = DocumentStore(path)
    await store.initialize()
    async with store.transaction() as tx:
        await tx.scan(Collection.templates)
    assert not path.exists()


@pytest.mark.asyncio
async def test_corrupt_snapshot_is_moved_aside(tmp_path, caplog):
    """Unparseable data is preserved next to the target and the store starts empty."""
    path = tmp_path / "ledger.json"
    path.write_text("{not json", encoding="utf-8")

    store = DocumentStore(path)
    with caplog.at_level(logging.WARNING, logger="ajl.store"):
        await store.initialize()

    assert store.recovered_from is not None
    assert store.recovered_from.exists()
    assert store.recovered_from.read_text(encoding="utf-8") == "{not json"
    assert not path.exists()
    assert any("degraded recovery" in r.getMessage() for r in caplog.records)

    async with store.transaction() as tx:
        assert await tx.scan(Collection.templates) == []


@pytest.mark.asyncio
async def test_invalid_record_is_dropped_and_the_rest_kept(tmp_path, caplog):
    path = tmp_path / "ledger.json"
    good = _template()
    doc = {
        "version": 1,
        "collections": {
            "templates": {
                good.id: good.model_dump(mode="json"),
                "t1": {"id": "t1", "due_day": 99},
            }
        },
    }
    path.write_text(json.dumps(doc), encoding="utf-8")

    store = DocumentStore(path)
    with caplog.at_level(logging.WARNING, logger="ajl.store"):
        await store.initialize()

    assert store.recovered_from is None
    assert path.exists()
    assert any("id=t1" in r.getMessage() for r in caplog.records)
    async with store.transaction() as tx:
        templates = await tx.scan(Collection.templates)
    assert [t.id for t in templates] == [good.id]


def test_decode_snapshot_reports_shape_errors():
    result = decode_snapshot(json.dumps({"version": 1}))
    assert not result.ok
    assert isinstance(result.error, StorageError)


def test_decode_snapshot_ignores_unknown_collections():
    result = decode_snapshot(json.dumps({"version": 1, "collections": {"widgets": {"w": {}}}}))
    assert result.ok
    assert "widgets" not in result.value
    assert result.value["templates"] == {}


@pytest.mark.asyncio
async def test_quota_exceeded_rolls_back(tmp_path):
    path = tmp_path / "ledger.json"
    store = DocumentStore(path, max_bytes=400)
    await store.initialize()

    with pytest.raises(StorageError) as info:
        async with store.transaction() as tx:
            for i in range(10):
                await tx.put(Collection.templates, _template(f"Bill {i}"))

    assert info.value.details["reason"] == "quota_exceeded"
    assert not path.exists()
    async with store.transaction() as tx:
        assert await tx.scan(Collection.templates) == []


@pytest.mark.asyncio
async def test_memory_store_never_touches_disk(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    store = DocumentStore()
    await store.initialize()
    async with store.transaction() as tx:
        await tx.put(Collection.templates, _template())
    assert list(tmp_path.iterdir()) == []
