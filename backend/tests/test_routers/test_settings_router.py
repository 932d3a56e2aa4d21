"""Router tests: month settings, app settings and sinking fund reads."""

from decimal import Decimal

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_month_settings_round_trip(client: AsyncClient):
    resp = await client.get("/month-settings?year=2026&month=4")
    assert resp.json()["data"]["cash_start"] == "0.00"

    resp = await client.post(
        "/month-settings", json={"year": 2026, "month": 4, "cash_start": "812.345"}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["cash_start"] == "812.35"


@pytest.mark.asyncio
async def test_negative_cash_start_rejected(client: AsyncClient):
    resp = await client.post("/month-settings", json={"year": 2026, "month": 4, "cash_start": "-1"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_app_settings_normalized(client: AsyncClient):
    resp = await client.post(
        "/settings",
        json={"defaults": {"sort": "bogus", "dueSoonDays": 5}, "categories": ["Fun", "Fun"]},
    )
    data = resp.json()["data"]
    assert data["defaults"] == {"sort": "due_date", "due_soon_days": 5, "default_period": "month"}
    assert data["categories"] == ["Fun"]

    stored = (await client.get("/settings")).json()["data"]
    assert stored == data


@pytest.mark.asyncio
async def test_sinking_funds_and_events(client: AsyncClient):
    await client.post(
        "/v1/actions",
        json={
            "action_id": "fund",
            "type": "CREATE_FUND",
            "name": "Insurance",
            "target_amount": "600",
            "due_date": "2026-08-31",
            "auto_contribute": False,
        },
    )
    funds = (await client.get("/sinking-funds?year=2026&month=3")).json()["data"]
    assert len(funds) == 1
    fund = funds[0]
    assert fund["months_remaining"] == 6
    assert Decimal(fund["monthly_contrib"]) == Decimal("100.00")
    assert fund["status"] == "behind"

    events = (await client.get(f"/sinking-events?fund_id={fund['id']}")).json()["data"]
    assert events == []

    resp = await client.get("/sinking-events?fund_id=missing")
    assert resp.status_code == 404
