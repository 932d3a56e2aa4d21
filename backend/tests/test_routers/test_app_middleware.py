"""Router tests: health, request IDs and the error envelope."""

from datetime import date

import pytest
from httpx import AsyncClient

from ajl.config import Settings
from ajl.main import create_app


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is True
    assert body["data"]["status"] == "ok"
    assert body["data"]["version"] == "1.1.0"


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient):
    """All responses include X-Request-ID header."""
    resp = await client.get("/health")
    # UUID format: 8-4-4-4-12
    assert len(resp.headers["X-Request-ID"]) == 36


@pytest.mark.asyncio
async def test_request_id_echoed_into_errors(client: AsyncClient):
    resp = await client.get("/instances", headers={"X-Request-ID": "req-123"})
    assert resp.status_code == 400
    assert resp.headers["X-Request-ID"] == "req-123"
    body = resp.json()
    assert body["ok"] is False
    assert body["request_id"] == "req-123"
    assert body["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_unknown_route_is_structured_404(client: AsyncClient):
    resp = await client.get("/nonexistent")
    assert resp.status_code == 404
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert "request_id" in body


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query",
    ["year=2026", "year=2026&month=13", "year=abc&month=1", "year=0&month=1"],
)
async def test_bad_month_query_rejected(client: AsyncClient, query: str):
    resp = await client.get(f"/instances?{query}")
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_advisor_disabled_is_503(client: AsyncClient):
    resp = await client.post("/internal/advisor/query", json={"task": "plan"})
    assert resp.status_code == 503
    body = resp.json()
    assert body["ok"] is False
    assert body["error"]["code"] == "COLLABORATOR_UNAVAILABLE"


@pytest.mark.asyncio
async def test_advisor_requires_task(client: AsyncClient):
    resp = await client.post("/internal/advisor/query", json={"task": ""})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_startup_takes_daily_backup(tmp_path):
    document = tmp_path / "ledger.json"
    document.write_text('{"version": 1, "collections": {}}', encoding="utf-8")
    app_settings = Settings(
        store_backend="document",
        document_path=str(document),
        backup_dir=str(tmp_path / "backups"),
    )
    application = create_app(app_settings)

    async with application.router.lifespan_context(application):
        assert application.state.ledger.store.backend_name == "document"

    backup = tmp_path / "backups" / f"au_jour_le_jour_{date.today().isoformat()}.json"
    assert backup.read_text(encoding="utf-8") == document.read_text(encoding="utf-8")
