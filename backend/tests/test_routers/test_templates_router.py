"""Router tests: template endpoints."""

from decimal import Decimal

import pytest
from httpx import AsyncClient

RENT = {"name": "Rent", "category": "Housing", "amount_default": "1200.00", "due_day": 1}


async def _create(client: AsyncClient, body: dict = RENT, query: str = "") -> dict:
    resp = await client.post(f"/templates{query}", json=body)
    assert resp.status_code == 200, resp.text
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_create_template_materializes_current_month(client: AsyncClient):
    template = await _create(client)
    assert template["name"] == "Rent"
    assert Decimal(template["amount_default"]) == Decimal("1200.00")
    assert template["active"] is True

    resp = await client.get("/instances?year=2026&month=3")
    items = resp.json()["data"]
    assert [i["template_id"] for i in items] == [template["id"]]


@pytest.mark.asyncio
async def test_create_template_for_named_month(client: AsyncClient):
    template = await _create(client, query="?year=2026&month=7")
    resp = await client.get("/ensure-month?year=2026&month=7")
    assert resp.json()["data"] == {"year": 2026, "month": 7, "created": 0}
    assert template["id"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {**RENT, "name": "  "},
        {**RENT, "amount_default": "-1"},
        {**RENT, "due_day": 32},
        {**RENT, "due_day": 0},
        {"name": "Rent"},
    ],
)
async def test_create_template_validation(client: AsyncClient, body: dict):
    resp = await client.post("/templates", json=body)
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    listing = await client.get("/templates")
    assert listing.json()["data"] == []


@pytest.mark.asyncio
async def test_list_sorted_by_name(client: AsyncClient):
    for name in ("water", "Internet", "electricity"):
        await _create(client, {**RENT, "name": name})
    resp = await client.get("/templates")
    assert [t["name"] for t in resp.json()["data"]] == ["electricity", "Internet", "water"]


@pytest.mark.asyncio
async def test_update_reapplies_only_named_month(client: AsyncClient):
    template = await _create(client)
    await client.get("/ensure-month?year=2026&month=4")

    resp = await client.put(
        f"/templates/{template['id']}?year=2026&month=4",
        json={**RENT, "amount_default": "1300.00"},
    )
    assert resp.status_code == 200

    march = (await client.get("/instances?year=2026&month=3")).json()["data"]
    april = (await client.get("/instances?year=2026&month=4")).json()["data"]
    assert Decimal(march[0]["amount"]) == Decimal("1200.00")
    assert Decimal(april[0]["amount"]) == Decimal("1300.00")


@pytest.mark.asyncio
async def test_update_unknown_template_404(client: AsyncClient):
    resp = await client.put("/templates/missing", json=RENT)
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_archive_stops_future_months(client: AsyncClient):
    template = await _create(client)
    resp = await client.post(f"/templates/{template['id']}/archive")
    assert resp.json()["data"]["active"] is False

    april = (await client.get("/instances?year=2026&month=4")).json()["data"]
    assert april == []


@pytest.mark.asyncio
async def test_delete_from_month_keeps_history(client: AsyncClient):
    template = await _create(client)
    await client.get("/ensure-month?year=2026&month=4")

    resp = await client.delete(f"/templates/{template['id']}?year=2026&month=4")
    assert resp.json()["data"] == {"template_id": template["id"], "removed_instances": 1}

    assert len((await client.get("/instances?year=2026&month=3")).json()["data"]) == 1
    assert (await client.get("/templates")).json()["data"] == []


@pytest.mark.asyncio
async def test_apply_templates(client: AsyncClient):
    await _create(client)
    await _create(client, {**RENT, "name": "Phone", "amount_default": "45"})
    resp = await client.post("/apply-templates?year=2026&month=5")
    assert resp.json()["data"] == {"year": 2026, "month": 5, "applied": 2}
