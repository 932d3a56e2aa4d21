"""Sinking funds router: projected fund views and fund event history."""

from fastapi import APIRouter, Depends, Query

from ajl.dependencies import get_ledger, required_month
from ajl.schemas.common import Envelope
from ajl.schemas.sinking import SinkingEvent, SinkingFundView
from ajl.services import sinking_service
from ajl.services.ledger import Ledger

router = APIRouter(tags=["sinking"])


@router.get("/sinking-funds", response_model=Envelope[list[SinkingFundView]])
async def list_funds(
    period: tuple[int, int] = Depends(required_month),
    include_inactive: bool = Query(default=False),
    ledger: Ledger = Depends(get_ledger),
):
    """Funds projected against the first day of the month.

    Reading a month materializes it, which also records that month's
    auto contributions.
    """
    year, month = period
    await ledger.ensure_month(year, month)
    async with ledger.transaction() as tx:
        funds = await sinking_service.get_fund_views(
            tx, year, month, include_inactive=include_inactive
        )
    return Envelope(data=funds)


@router.get("/sinking-events", response_model=Envelope[list[SinkingEvent]])
async def list_events(
    fund_id: str | None = Query(default=None),
    ledger: Ledger = Depends(get_ledger),
):
    async with ledger.transaction() as tx:
        if fund_id:
            await sinking_service.get_fund(tx, fund_id)
        events = await sinking_service.events_for_fund(tx, fund_id)
    return Envelope(data=events)
