"""Stable v1 API: versioned read payloads and the command endpoint.

Endpoints:
- GET /v1/summary: month totals plus money reserved in sinking funds
- GET /v1/month: itemized month
- GET /v1/templates: template list
- GET /v1/sinking-funds: projected funds for a month
- GET /v1/sinking-events: fund event history
- POST /v1/actions: dispatch one command
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from ajl.config import Settings
from ajl.core.calendar import month_key, utcnow
from ajl.dependencies import get_ledger, get_settings, required_month
from ajl.schemas.common import Envelope
from ajl.schemas.summary import (
    MonthItem,
    MonthRead,
    SinkingEventsRead,
    SinkingFundsRead,
    SummaryRead,
    TemplatesRead,
)
from ajl.services import accounting, action_dispatcher, sinking_service, template_service
from ajl.services.export_service import version_info
from ajl.services.ledger import Ledger

router = APIRouter(prefix="/v1", tags=["v1"])


def _stamp(settings: Settings) -> dict:
    return {**version_info(settings), "generated_at": utcnow()}


@router.get("/summary", response_model=Envelope[SummaryRead])
async def summary(
    period: tuple[int, int] = Depends(required_month),
    essentials_only: bool = Query(default=True),
    ledger: Ledger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    year, month = period
    await ledger.ensure_month(year, month)
    async with ledger.transaction() as tx:
        instances = await accounting.get_instances(tx, year, month)
        reserved = await sinking_service.future_reserved(tx)
    totals = accounting.compute_summary(
        instances, year, month, today=ledger.today(), essentials_only=essentials_only
    )
    return Envelope(
        data=SummaryRead(
            **_stamp(settings),
            period=month_key(year, month),
            filters={"essentials_only": essentials_only},
            required_month=totals.required_month,
            paid_month=totals.paid_month,
            remaining_month=totals.remaining_month,
            need_daily_exact=totals.need_daily_exact,
            need_weekly_exact=totals.need_weekly_exact,
            free_for_month=totals.free_for_month,
            future_reserved=reserved,
        )
    )


@router.get("/month", response_model=Envelope[MonthRead])
async def month_items(
    period: tuple[int, int] = Depends(required_month),
    essentials_only: bool = Query(default=True),
    ledger: Ledger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    year, month = period
    await ledger.ensure_month(year, month)
    async with ledger.transaction() as tx:
        instances = await accounting.get_instances(tx, year, month)
    if essentials_only:
        instances = [i for i in instances if i.essential_snapshot]
    items = [
        MonthItem(
            instance_id=i.id,
            template_id=i.template_id,
            name=i.name_snapshot,
            category=i.category_snapshot,
            amount=i.amount,
            amount_paid=i.amount_paid,
            amount_remaining=i.amount_remaining,
            due_date=i.due_date,
            status=i.status_derived.value,
            paid_date=i.paid_date,
            autopay=i.autopay_snapshot,
            essential=i.essential_snapshot,
            note=i.note,
        )
        for i in instances
    ]
    return Envelope(data=MonthRead(**_stamp(settings), period=month_key(year, month), items=items))


@router.get("/templates", response_model=Envelope[TemplatesRead])
async def templates(
    ledger: Ledger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    async with ledger.transaction() as tx:
        rows = await template_service.list_templates(tx)
    return Envelope(data=TemplatesRead(**_stamp(settings), templates=rows))


@router.get("/sinking-funds", response_model=Envelope[SinkingFundsRead])
async def sinking_funds(
    period: tuple[int, int] = Depends(required_month),
    include_inactive: bool = Query(default=False),
    ledger: Ledger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    year, month = period
    await ledger.ensure_month(year, month)
    async with ledger.transaction() as tx:
        funds = await sinking_service.get_fund_views(
            tx, year, month, include_inactive=include_inactive
        )
    return Envelope(
        data=SinkingFundsRead(**_stamp(settings), period=month_key(year, month), funds=funds)
    )


@router.get("/sinking-events", response_model=Envelope[SinkingEventsRead])
async def sinking_events(
    fund_id: str | None = Query(default=None),
    ledger: Ledger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    async with ledger.transaction() as tx:
        events = await sinking_service.events_for_fund(tx, fund_id)
    return Envelope(data=SinkingEventsRead(**_stamp(settings), events=events))


@router.post("/actions", response_model=Envelope[dict])
async def dispatch_action(
    body: Any = Body(default=None),
    ledger: Ledger = Depends(get_ledger),
):
    """Run one command. A repeated action_id returns the recorded result."""
    result = await action_dispatcher.dispatch(ledger, body)
    if not result.ok:
        raise result.error
    return Envelope(data=result.value)
