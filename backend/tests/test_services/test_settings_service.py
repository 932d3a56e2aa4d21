"""Service tests: month cash start and app settings normalization."""

from decimal import Decimal

import pytest

from ajl.schemas.settings import AppSettings
from ajl.services import settings_service


@pytest.mark.asyncio
async def test_month_settings_default_to_zero(store):
    async with store.transaction() as tx:
        placeholder = await settings_service.get_month_settings(tx, 2026, 5)
    assert placeholder.id == "2026-05"
    assert placeholder.cash_start == Decimal("0.00")


@pytest.mark.asyncio
async def test_set_cash_start_upserts(store):
    async with store.transaction() as tx:
        await settings_service.set_cash_start(tx, 2026, 5, Decimal("100"))
        await settings_service.set_cash_start(tx, 2026, 5, Decimal("250.5"))

    async with store.transaction() as tx:
        stored = await settings_service.get_month_settings(tx, 2026, 5)
    assert stored.cash_start == Decimal("250.50")


def test_app_settings_fall_back_to_defaults():
    parsed = AppSettings.model_validate(
        {
            "defaults": {"sort": "random", "dueSoonDays": 90, "defaultPeriod": "year"},
            "categories": ["Housing", " Housing ", "", None, "Fun"],
        }
    )
    assert parsed.defaults.sort == "due_date"
    assert parsed.defaults.due_soon_days == 7
    assert parsed.defaults.default_period == "month"
    assert parsed.categories == ["Housing", "Fun"]


@pytest.mark.asyncio
async def test_app_settings_round_trip(store):
    async with store.transaction() as tx:
        assert (await settings_service.get_app_settings(tx)).categories == []
        await settings_service.save_app_settings(
            tx, AppSettings.model_validate({"defaults": {"sort": "amount", "due_soon_days": 3}})
        )

    async with store.transaction() as tx:
        loaded = await settings_service.get_app_settings(tx)
    assert loaded.defaults.sort == "amount"
    assert loaded.defaults.due_soon_days == 3
