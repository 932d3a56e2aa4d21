"""Materializer: expands active templates into month instances.

``ensure_month`` is idempotent by key-existence check on
(template_id, year, month). It is not a lock, so callers go through
``Ledger.ensure_month`` which serializes it per month.
"""

import logging

from ajl.core.calendar import due_date_for, first_of_month, in_month, month_index, utcnow
from ajl.core.errors import NotFoundError
from ajl.schemas.common import to_cents
from ajl.schemas.instance import Instance, InstanceEventType
from ajl.schemas.sinking import SinkingEvent, SinkingEventType
from ajl.schemas.template import Template
from ajl.services import audit_service, sinking_service
from ajl.store import Collection, StoreTransaction

logger = logging.getLogger("ajl.materializer")

AUTO_CONTRIBUTION_NOTE = "Auto contribution"


async def _instance_for(
    tx: StoreTransaction, template_id: str, year: int, month: int
) -> Instance | None:
    found = await tx.scan(Collection.instances, template_id=template_id, year=year, month=month)
    return found[0] if found else None


async def ensure_month(tx: StoreTransaction, year: int, month: int) -> list[Instance]:
    """Create the missing instances of (year, month), then auto-contribute funds.

    Returns the instances created by this call (empty when already complete).
    """
    created: list[Instance] = []
    for template in await tx.scan(Collection.templates, active=True):
        if await _instance_for(tx, template.id, year, month) is not None:
            continue
        instance = Instance(
            template_id=template.id,
            year=year,
            month=month,
            name_snapshot=template.name,
            category_snapshot=template.category,
            amount=template.amount_default,
            due_date=due_date_for(year, month, template.due_day),
            autopay_snapshot=template.autopay,
            essential_snapshot=template.essential,
            note=template.default_note,
        )
        await tx.put(Collection.instances, instance)
        await audit_service.log_instance_event(
            tx,
            instance_id=instance.id,
            event_type=InstanceEventType.created,
            detail={
                "source": "template",
                "name": template.name,
                "due_date": instance.due_date,
                "amount": instance.amount,
            },
        )
        created.append(instance)

    if created:
        logger.info("Materialized %d instance(s) for %d-%02d", len(created), year, month)
    await auto_contribute_for_month(tx, year, month)
    return created


async def _has_contribution_in_month(
    tx: StoreTransaction, fund_id: str, year: int, month: int
) -> bool:
    events = await tx.scan(
        Collection.sinking_events, fund_id=fund_id, type=SinkingEventType.contribution
    )
    return any(in_month(e.event_date, year, month) for e in events)


async def auto_contribute_for_month(
    tx: StoreTransaction, year: int, month: int
) -> list[SinkingEvent]:
    """Record this month's planned contribution for every auto-contributing fund.

    A fund that already has a CONTRIBUTION dated inside the month is left
    alone, so this is idempotent per (fund, month). Only ``ensure_month``
    calls it.
    """
    ref = first_of_month(year, month)
    recorded: list[SinkingEvent] = []
    for fund in await tx.scan(Collection.sinking_funds, active=True, auto_contribute=True):
        if await _has_contribution_in_month(tx, fund.id, year, month):
            continue
        view = sinking_service.project_fund(
            fund, await sinking_service.fund_balance(tx, fund.id), ref
        )
        amount = to_cents(view.monthly_contrib)
        if amount <= 0:
            continue
        event = SinkingEvent(
            fund_id=fund.id,
            amount=amount,
            type=SinkingEventType.contribution,
            event_date=ref,
            note=AUTO_CONTRIBUTION_NOTE,
        )
        await tx.put(Collection.sinking_events, event)
        recorded.append(event)
    return recorded


async def apply_template_to_month(
    tx: StoreTransaction, template: Template, year: int, month: int
) -> Instance | None:
    """Overwrite the snapshot fields of the template's (year, month) instance.

    This is the only path by which a template edit reaches an instance that
    already exists. Active templates first ensure the month.
    """
    if template.active:
        await ensure_month(tx, year, month)
    instance = await _instance_for(tx, template.id, year, month)
    if instance is None:
        return None
    updated = instance.model_copy(
        update={
            "name_snapshot": template.name,
            "category_snapshot": template.category,
            "amount": template.amount_default,
            "due_date": due_date_for(year, month, template.due_day),
            "autopay_snapshot": template.autopay,
            "essential_snapshot": template.essential,
            "updated_at": utcnow(),
        }
    )
    await tx.put(Collection.instances, updated)
    return updated


async def apply_templates(tx: StoreTransaction, year: int, month: int) -> int:
    """Ensure the month, then reapply every template to its instance there."""
    await ensure_month(tx, year, month)
    applied = 0
    for template in await tx.scan(Collection.templates):
        if await apply_template_to_month(tx, template, year, month) is not None:
            applied += 1
    return applied


async def delete_template_from_month(
    tx: StoreTransaction,
    template_id: str,
    year: int | None = None,
    month: int | None = None,
) -> int:
    """Delete a template with its instances from the cutoff month onward.

    Instances strictly before (year, month) and their payments survive. With
    no cutoff every instance goes. Returns the number of instances removed.
    """
    if await tx.get(Collection.templates, template_id) is None:
        raise NotFoundError("Template not found", {"template_id": template_id})

    cutoff = month_index(year, month) if year is not None and month is not None else None
    removed = 0
    for instance in await tx.scan(Collection.instances, template_id=template_id):
        if cutoff is not None and month_index(instance.year, instance.month) < cutoff:
            continue
        for payment in await tx.scan(Collection.payment_events, instance_id=instance.id):
            await tx.delete(Collection.payment_events, payment.id)
        await tx.delete(Collection.instances, instance.id)
        removed += 1

    await tx.delete(Collection.templates, template_id)
    logger.info("Deleted template %s with %d instance(s)", template_id, removed)
    return removed
