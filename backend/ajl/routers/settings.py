"""Settings router: per-month starting cash and app-wide settings."""

from fastapi import APIRouter, Depends

from ajl.dependencies import get_ledger, required_month
from ajl.schemas.common import Envelope
from ajl.schemas.settings import AppSettings, CashStartUpdate, MonthSettings
from ajl.services import settings_service
from ajl.services.ledger import Ledger

router = APIRouter(tags=["settings"])


@router.get("/month-settings", response_model=Envelope[MonthSettings])
async def get_month_settings(
    period: tuple[int, int] = Depends(required_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    async with ledger.transaction() as tx:
        month_settings = await settings_service.get_month_settings(tx, year, month)
    return Envelope(data=month_settings)


@router.post("/month-settings", response_model=Envelope[MonthSettings])
async def set_month_settings(body: CashStartUpdate, ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        month_settings = await settings_service.set_cash_start(
            tx, body.year, body.month, body.cash_start
        )
    return Envelope(data=month_settings)


@router.get("/settings", response_model=Envelope[AppSettings])
async def get_settings(ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        app_settings = await settings_service.get_app_settings(tx)
    return Envelope(data=app_settings)


@router.post("/settings", response_model=Envelope[AppSettings])
async def save_settings(body: AppSettings, ledger: Ledger = Depends(get_ledger)):
    """Replace the settings. Unknown sort keys and out-of-range values fall back to defaults."""
    async with ledger.transaction() as tx:
        app_settings = await settings_service.save_app_settings(tx, body)
    return Envelope(data=app_settings)
