"""Month settings (starting cash) and process-wide app settings."""

from decimal import Decimal

from ajl.core.calendar import month_key, utcnow
from ajl.schemas.settings import AppSettings, Meta, MonthSettings
from ajl.store import Collection, StoreTransaction

SETTINGS_KEY = "settings"


async def get_month_settings(tx: StoreTransaction, year: int, month: int) -> MonthSettings:
    """Stored settings for the month, or a zero cash_start placeholder."""
    stored = await tx.get(Collection.month_settings, month_key(year, month))
    if stored is not None:
        return stored
    return MonthSettings(id=month_key(year, month), year=year, month=month, cash_start=Decimal("0"))


async def set_cash_start(
    tx: StoreTransaction, year: int, month: int, cash_start: Decimal
) -> MonthSettings:
    settings = MonthSettings(
        id=month_key(year, month), year=year, month=month, cash_start=cash_start, updated_at=utcnow()
    )
    await tx.put(Collection.month_settings, settings)
    return settings


async def get_app_settings(tx: StoreTransaction) -> AppSettings:
    stored = await tx.get(Collection.meta, SETTINGS_KEY)
    return AppSettings.model_validate(stored.value if stored is not None else {})


async def save_app_settings(tx: StoreTransaction, settings: AppSettings) -> AppSettings:
    """Replace the app settings; values are normalized by AppSettings itself."""
    await tx.put(
        Collection.meta,
        Meta(id=SETTINGS_KEY, value=settings.model_dump(mode="json"), updated_at=utcnow()),
    )
    return settings
