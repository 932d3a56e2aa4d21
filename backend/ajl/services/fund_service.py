"""Sinking fund service: fund lifecycle and fund events."""

from datetime import date
from decimal import Decimal

from ajl.core.calendar import add_months, utcnow
from ajl.core.errors import ValidationError
from ajl.schemas.sinking import (
    SinkingEvent,
    SinkingEventType,
    SinkingFund,
    SinkingFundFields,
    resolve_months_per_cycle,
)
from ajl.services.sinking_service import get_fund
from ajl.store import Collection, StoreTransaction

FUND_PAID_NOTE = "Bill paid"


def _fields(data: SinkingFundFields) -> dict:
    return data.model_dump(include=set(SinkingFundFields.model_fields))


async def create_fund(tx: StoreTransaction, data: SinkingFundFields) -> SinkingFund:
    fund = SinkingFund(**_fields(data))
    await tx.put(Collection.sinking_funds, fund)
    return fund


async def update_fund(tx: StoreTransaction, fund_id: str, data: SinkingFundFields) -> SinkingFund:
    existing = await get_fund(tx, fund_id)
    fund = existing.model_copy(update={**_fields(data), "updated_at": utcnow()})
    await tx.put(Collection.sinking_funds, fund)
    return fund


async def archive_fund(tx: StoreTransaction, fund_id: str) -> SinkingFund:
    existing = await get_fund(tx, fund_id)
    fund = existing.model_copy(update={"active": False, "updated_at": utcnow()})
    await tx.put(Collection.sinking_funds, fund)
    return fund


async def delete_fund(tx: StoreTransaction, fund_id: str) -> int:
    """Delete a fund and every event recorded against it."""
    await get_fund(tx, fund_id)
    events = await tx.scan(Collection.sinking_events, fund_id=fund_id)
    for event in events:
        await tx.delete(Collection.sinking_events, event.id)
    await tx.delete(Collection.sinking_funds, fund_id)
    return len(events)


async def add_event(
    tx: StoreTransaction,
    fund_id: str,
    *,
    event_type: SinkingEventType,
    amount: Decimal,
    event_date: date,
    note: str | None = None,
) -> SinkingEvent:
    """Record a fund event.

    Contributions and withdrawals need a positive amount; an adjustment may
    carry either sign but not zero.
    """
    fund = await get_fund(tx, fund_id)
    if amount == 0:
        raise ValidationError("amount must be non-zero", {"amount": amount})
    if event_type != SinkingEventType.adjustment and amount < 0:
        raise ValidationError("amount must be positive", {"amount": amount})
    event = SinkingEvent(
        fund_id=fund.id, amount=amount, type=event_type, event_date=event_date, note=note or None
    )
    await tx.put(Collection.sinking_events, event)
    return event


async def mark_fund_paid(
    tx: StoreTransaction,
    fund_id: str,
    *,
    event_date: date,
    amount: Decimal | None = None,
) -> tuple[SinkingEvent, SinkingFund]:
    """Withdraw the paid amount (default: the full target) and roll the due date.

    The due date advances one cycle even when the withdrawal is partial.
    """
    fund = await get_fund(tx, fund_id)
    amount = fund.target_amount if amount is None else amount
    if amount <= 0:
        raise ValidationError("amount must be > 0", {"amount": amount})
    event = SinkingEvent(
        fund_id=fund.id,
        amount=amount,
        type=SinkingEventType.withdrawal,
        event_date=event_date,
        note=FUND_PAID_NOTE,
    )
    await tx.put(Collection.sinking_events, event)

    cycle = resolve_months_per_cycle(fund.cadence, fund.months_per_cycle)
    rolled = fund.model_copy(
        update={"due_date": add_months(fund.due_date, cycle), "updated_at": utcnow()}
    )
    await tx.put(Collection.sinking_funds, rolled)
    return event, rolled
