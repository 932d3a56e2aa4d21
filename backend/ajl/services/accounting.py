"""Accounting view: instances joined with their payment events.

Nothing here mutates the store. Callers that read a month must have
materialized it first (``Ledger.ensure_month``).
"""

from datetime import date
from decimal import Decimal

from ajl.core.calendar import days_in_month
from ajl.core.errors import NotFoundError
from ajl.schemas.common import to_cents
from ajl.schemas.instance import DerivedStatus, Instance, InstanceRead, InstanceStatus, PaymentRead
from ajl.schemas.summary import MonthSummary
from ajl.store import Collection, StoreTransaction

ZERO = Decimal("0")

# Planning averages: days and weeks in an average month
DAYS_PER_MONTH_AVG = Decimal("30.4")
WEEKS_PER_MONTH_AVG = Decimal("4.33")


def derive_status(instance: Instance, amount_paid: Decimal) -> DerivedStatus:
    if instance.status == InstanceStatus.skipped:
        return DerivedStatus.skipped
    if amount_paid <= 0:
        return DerivedStatus.pending
    if amount_paid < instance.amount:
        return DerivedStatus.partial
    return DerivedStatus.paid


def with_payments(instance: Instance, amount_paid: Decimal) -> InstanceRead:
    return InstanceRead(
        **instance.model_dump(),
        amount_paid=amount_paid,
        amount_remaining=max(ZERO, instance.amount - amount_paid),
        status_derived=derive_status(instance, amount_paid),
    )


async def amount_paid_for(tx: StoreTransaction, instance_id: str) -> Decimal:
    payments = await tx.scan(Collection.payment_events, instance_id=instance_id)
    return sum((p.amount for p in payments), ZERO)


async def attach_payments(tx: StoreTransaction, instances: list[Instance]) -> list[InstanceRead]:
    """Augment each instance with amount_paid, amount_remaining and status_derived."""
    return [with_payments(i, await amount_paid_for(tx, i.id)) for i in instances]


def sort_instances(instances: list) -> list:
    return sorted(instances, key=lambda i: (i.due_date, i.name_snapshot.lower()))


async def get_instance(tx: StoreTransaction, instance_id: str) -> Instance:
    instance = await tx.get(Collection.instances, instance_id)
    if instance is None:
        raise NotFoundError("Instance not found", {"instance_id": instance_id})
    return instance


async def get_instance_read(tx: StoreTransaction, instance_id: str) -> InstanceRead:
    instance = await get_instance(tx, instance_id)
    return with_payments(instance, await amount_paid_for(tx, instance.id))


async def get_instances(tx: StoreTransaction, year: int, month: int) -> list[InstanceRead]:
    """Month instances sorted by due date then name, accounting-attached."""
    instances = await tx.scan(Collection.instances, year=year, month=month)
    return await attach_payments(tx, sort_instances(instances))


async def get_payments_for_month(tx: StoreTransaction, year: int, month: int) -> list[PaymentRead]:
    """Every payment against the month's instances, newest paid_date first."""
    payments: list[PaymentRead] = []
    for instance in await tx.scan(Collection.instances, year=year, month=month):
        for payment in await tx.scan(Collection.payment_events, instance_id=instance.id):
            payments.append(
                PaymentRead(
                    **payment.model_dump(),
                    name_snapshot=instance.name_snapshot,
                    year=instance.year,
                    month=instance.month,
                )
            )
    # two stable passes: created_at desc, then paid_date desc
    payments.sort(key=lambda p: p.created_at, reverse=True)
    payments.sort(key=lambda p: p.paid_date, reverse=True)
    return payments


def compute_summary(
    instances: list[InstanceRead],
    year: int,
    month: int,
    *,
    today: date,
    essentials_only: bool = False,
) -> MonthSummary:
    """Month totals over non-skipped instances.

    Accumulation is exact; figures are rounded to cents only here, on output.
    """
    rows = [i for i in instances if i.essential_snapshot] if essentials_only else list(instances)
    counted = [i for i in rows if i.status_derived != DerivedStatus.skipped]

    required = sum((i.amount for i in counted), ZERO)
    paid = sum((min(i.amount, i.amount_paid) for i in counted), ZERO)
    remaining = sum((i.amount_remaining for i in counted), ZERO)

    days = days_in_month(year, month)
    need_daily = required / days
    overdue = any(
        i.status_derived != DerivedStatus.paid and i.amount_remaining > 0 and i.due_date < today
        for i in counted
    )

    return MonthSummary(
        required_month=to_cents(required),
        paid_month=to_cents(paid),
        remaining_month=to_cents(remaining),
        need_daily_exact=to_cents(need_daily),
        need_weekly_exact=to_cents(need_daily * 7),
        need_daily_plan=to_cents(required / DAYS_PER_MONTH_AVG),
        need_weekly_plan=to_cents(required / WEEKS_PER_MONTH_AVG),
        free_for_month=required > 0 and remaining == 0 and not overdue,
        days_in_month=days,
    )
