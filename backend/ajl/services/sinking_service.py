"""Sinking fund projector.

Balances are always re-derived from the event history. A fund is projected
against a reference date R, the first day of the queried month:

- months_remaining(R, D) counts month boundaries from R to the due date D,
  plus one when D falls on or after R's day of month; 0 once D <= R.
- monthly_contrib spreads the shortfall (T - B) evenly over those months.
- expected_saved is the linear share of T for the months already elapsed in
  the current cycle.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from ajl.core.calendar import first_of_month
from ajl.core.errors import NotFoundError
from ajl.schemas.common import to_cents
from ajl.schemas.sinking import (
    FundStatus,
    SinkingEvent,
    SinkingEventType,
    SinkingFund,
    SinkingFundView,
    resolve_months_per_cycle,
)
from ajl.store import Collection, StoreTransaction

ZERO = Decimal("0")

# B + BEHIND_TOLERANCE < expected_saved counts as behind
BEHIND_TOLERANCE = Decimal("0.01")


def balance_of(events: Iterable[SinkingEvent]) -> Decimal:
    """Contributions add, withdrawals subtract, adjustments add their signed amount."""
    total = ZERO
    for event in events:
        if event.type == SinkingEventType.withdrawal:
            total -= event.amount
        else:
            total += event.amount
    return total


async def fund_balance(tx: StoreTransaction, fund_id: str) -> Decimal:
    return balance_of(await tx.scan(Collection.sinking_events, fund_id=fund_id))


def months_remaining(ref: date, due: date) -> int:
    if due <= ref:
        return 0
    diff = (due.year - ref.year) * 12 + (due.month - ref.month)
    if due.day >= ref.day:
        diff += 1
    return max(0, diff)


def monthly_contribution(target: Decimal, balance: Decimal, remaining: int) -> Decimal:
    """Unrounded monthly amount needed to close the gap by the due date."""
    if target > 0 and balance < target and remaining > 0:
        return (target - balance) / remaining
    return ZERO


def expected_saved(target: Decimal, remaining: int, cycle: int) -> Decimal:
    elapsed = min(max(cycle - remaining, 0), cycle)
    return target * elapsed / cycle


def fund_status(
    *, ref: date, due: date, balance: Decimal, target: Decimal, expected: Decimal
) -> FundStatus:
    if due <= ref:
        return FundStatus.due
    if balance >= target:
        return FundStatus.ready
    if balance + BEHIND_TOLERANCE < expected:
        return FundStatus.behind
    return FundStatus.on_track


def project_fund(fund: SinkingFund, balance: Decimal, ref: date) -> SinkingFundView:
    """Project one fund against reference date ``ref``."""
    target = fund.target_amount
    cycle = resolve_months_per_cycle(fund.cadence, fund.months_per_cycle)
    remaining = months_remaining(ref, fund.due_date)
    expected = expected_saved(target, remaining, cycle)
    progress = float(balance / target) if target > 0 else 1.0
    return SinkingFundView(
        **fund.model_dump(),
        balance=balance,
        monthly_contrib=to_cents(monthly_contribution(target, balance, remaining)),
        months_remaining=remaining,
        status=fund_status(
            ref=ref, due=fund.due_date, balance=balance, target=target, expected=expected
        ),
        progress_ratio=progress,
        expected_saved=to_cents(expected),
    )


async def get_fund(tx: StoreTransaction, fund_id: str) -> SinkingFund:
    fund = await tx.get(Collection.sinking_funds, fund_id)
    if fund is None:
        raise NotFoundError("Fund not found", {"fund_id": fund_id})
    return fund


async def get_fund_view(tx: StoreTransaction, fund_id: str, ref: date) -> SinkingFundView:
    fund = await get_fund(tx, fund_id)
    return project_fund(fund, await fund_balance(tx, fund.id), ref)


async def get_fund_views(
    tx: StoreTransaction,
    year: int,
    month: int,
    *,
    include_inactive: bool = False,
) -> list[SinkingFundView]:
    """Every fund projected against the first day of (year, month), by due date."""
    ref = first_of_month(year, month)
    funds = await tx.scan(Collection.sinking_funds)
    if not include_inactive:
        funds = [f for f in funds if f.active]
    funds.sort(key=lambda f: (f.due_date, f.name.lower()))
    return [project_fund(f, await fund_balance(tx, f.id), ref) for f in funds]


async def future_reserved(tx: StoreTransaction) -> Decimal:
    """Money already set aside in active funds (negative balances count as 0)."""
    total = ZERO
    for fund in await tx.scan(Collection.sinking_funds, active=True):
        total += max(ZERO, await fund_balance(tx, fund.id))
    return total


async def events_for_fund(tx: StoreTransaction, fund_id: str | None = None) -> list[SinkingEvent]:
    """Sinking events, newest first; all funds when ``fund_id`` is None."""
    if fund_id:
        events = await tx.scan(Collection.sinking_events, fund_id=fund_id)
    else:
        events = await tx.scan(Collection.sinking_events)
    events.sort(key=lambda e: (e.event_date, e.created_at), reverse=True)
    return events
