from fastapi import Depends, Query, Request

from ajl.config import Settings, settings
from ajl.services.ledger import Ledger


def get_ledger(request: Request) -> Ledger:
    """The Ledger built at startup. Overridden in tests."""
    return request.app.state.ledger


def get_settings() -> Settings:
    return settings


def required_month(
    year: int = Query(ge=1, le=9999),
    month: int = Query(ge=1, le=12),
) -> tuple[int, int]:
    return year, month


def optional_month(
    year: int | None = Query(default=None, ge=1, le=9999),
    month: int | None = Query(default=None, ge=1, le=12),
    ledger: Ledger = Depends(get_ledger),
) -> tuple[int, int]:
    """(year, month) from the query, or the current month when both are absent."""
    return ledger.resolve_month(year, month)
