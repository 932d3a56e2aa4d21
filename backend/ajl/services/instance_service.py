"""Instance service: status changes, payments and field edits.

Every mutation appends audit events and returns the accounting-attached
instance. Status and paid_date are kept consistent: paid always carries a
paid_date, pending and skipped clear it unless one is given explicitly.
"""

from datetime import date

from ajl.core.calendar import utcnow
from ajl.core.errors import NotFoundError, ValidationError
from ajl.schemas.instance import (
    Instance,
    InstanceEventType,
    InstancePatch,
    InstanceRead,
    InstanceStatus,
    PaymentEvent,
)
from ajl.services import accounting, audit_service
from ajl.store import Collection, StoreTransaction


async def _save(tx: StoreTransaction, instance: Instance, **changes) -> InstanceRead:
    updated = instance.model_copy(update={**changes, "updated_at": utcnow()})
    await tx.put(Collection.instances, updated)
    return await accounting.get_instance_read(tx, updated.id)


async def mark_paid(tx: StoreTransaction, instance_id: str, *, paid_date: date) -> InstanceRead:
    """Pay off whatever remains, then mark the instance paid.

    The payment is exactly the remainder, so the balance always ends at zero
    regardless of earlier partial payments.
    """
    current = await accounting.get_instance_read(tx, instance_id)
    payment_id = None
    if current.amount_remaining > 0:
        payment = PaymentEvent(
            instance_id=instance_id, amount=current.amount_remaining, paid_date=paid_date
        )
        await tx.put(Collection.payment_events, payment)
        payment_id = payment.id
    instance = await accounting.get_instance(tx, instance_id)
    await audit_service.log_instance_event(
        tx,
        instance_id=instance_id,
        event_type=InstanceEventType.marked_done,
        detail={"paid_date": paid_date, "amount": instance.amount, "payment_id": payment_id},
    )
    return await _save(tx, instance, status=InstanceStatus.paid, paid_date=paid_date)


async def _clear_payments(tx: StoreTransaction, instance_id: str) -> int:
    payments = await tx.scan(Collection.payment_events, instance_id=instance_id)
    for payment in payments:
        await tx.delete(Collection.payment_events, payment.id)
    return len(payments)


async def mark_pending(tx: StoreTransaction, instance_id: str) -> InstanceRead:
    """Clear every payment and reset the instance to pending."""
    instance = await accounting.get_instance(tx, instance_id)
    await _clear_payments(tx, instance_id)
    await audit_service.log_instance_event(
        tx,
        instance_id=instance_id,
        event_type=InstanceEventType.status_changed,
        detail={"from": instance.status, "to": InstanceStatus.pending},
    )
    return await _save(tx, instance, status=InstanceStatus.pending, paid_date=None)


# undo-paid is MARK_PENDING under its endpoint name
undo_paid = mark_pending


async def skip(tx: StoreTransaction, instance_id: str) -> InstanceRead:
    instance = await accounting.get_instance(tx, instance_id)
    await audit_service.log_instance_event(
        tx,
        instance_id=instance_id,
        event_type=InstanceEventType.skipped,
        detail={"from": instance.status, "to": InstanceStatus.skipped},
    )
    return await _save(tx, instance, status=InstanceStatus.skipped, paid_date=None)


async def add_payment(
    tx: StoreTransaction, instance_id: str, *, amount, paid_date: date
) -> tuple[PaymentEvent, InstanceRead]:
    """Record one partial or full payment. Amount must be positive."""
    instance = await accounting.get_instance(tx, instance_id)
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be > 0", {"amount": amount})
    payment = PaymentEvent(instance_id=instance.id, amount=amount, paid_date=paid_date)
    await tx.put(Collection.payment_events, payment)
    await audit_service.log_instance_event(
        tx,
        instance_id=instance.id,
        event_type=InstanceEventType.log_update,
        detail={"amount": payment.amount, "date": paid_date, "payment_id": payment.id},
    )
    return payment, await accounting.get_instance_read(tx, instance.id)


async def undo_payment(tx: StoreTransaction, payment_id: str) -> InstanceRead | None:
    """Remove one payment; instance totals are re-derived from what is left."""
    payment = await tx.get(Collection.payment_events, payment_id)
    if payment is None:
        raise NotFoundError("Payment not found", {"payment_id": payment_id})
    await tx.delete(Collection.payment_events, payment_id)
    await audit_service.log_instance_event(
        tx,
        instance_id=payment.instance_id,
        event_type=InstanceEventType.update_removed,
        detail={"amount": payment.amount, "date": payment.paid_date, "payment_id": payment.id},
    )
    if await tx.get(Collection.instances, payment.instance_id) is None:
        return None
    return await accounting.get_instance_read(tx, payment.instance_id)


async def patch(
    tx: StoreTransaction, instance_id: str, data: InstancePatch, *, today: date
) -> InstanceRead:
    """Apply only the fields present in ``data``, auditing each kind of change."""
    before = await accounting.get_instance(tx, instance_id)
    given = data.model_fields_set
    if not given:
        raise ValidationError("No fields to update")
    if "name" in given and data.name is None:
        raise ValidationError("Name is required", {"field": "name"})
    if "amount" in given and data.amount is None:
        raise ValidationError("Amount must be >= 0", {"field": "amount"})
    if "due_date" in given and data.due_date is None:
        raise ValidationError("due_date must be YYYY-MM-DD", {"field": "due_date"})
    if "status" in given and data.status is None:
        raise ValidationError("Invalid status", {"field": "status"})

    changes: dict = {}
    edits: dict = {}

    def track(field: str, label: str, value) -> None:
        old = getattr(before, field)
        if old != value:
            edits[label] = {"from": old, "to": value}
        changes[field] = value

    if "amount" in given:
        track("amount", "amount", data.amount)
    if "name" in given:
        track("name_snapshot", "name", data.name)
    if "category" in given:
        track("category_snapshot", "category", data.category)
    if "due_date" in given:
        track("due_date", "due_date", data.due_date)
    if "note" in given:
        changes["note"] = data.note or None

    status = data.status if "status" in given else before.status
    if "status" in given:
        changes["status"] = status
    if "paid_date" in given:
        changes["paid_date"] = data.paid_date
    elif "status" in given and status != InstanceStatus.paid:
        changes["paid_date"] = None
    if status == InstanceStatus.paid and changes.get("paid_date", before.paid_date) is None:
        changes["paid_date"] = today

    result = await _save(tx, before, **changes)

    if "status" in given and status != before.status:
        if status == InstanceStatus.skipped:
            event_type = InstanceEventType.skipped
        elif before.status == InstanceStatus.skipped:
            event_type = InstanceEventType.unskipped
        else:
            event_type = InstanceEventType.status_changed
        await audit_service.log_instance_event(
            tx,
            instance_id=instance_id,
            event_type=event_type,
            detail={"from": before.status, "to": status},
        )
    if "note" in given and (before.note or "") != (data.note or ""):
        await audit_service.log_instance_event(
            tx,
            instance_id=instance_id,
            event_type=InstanceEventType.note_updated,
            detail={"from": before.note or "", "to": data.note or ""},
        )
    if edits:
        await audit_service.log_instance_event(
            tx,
            instance_id=instance_id,
            event_type=InstanceEventType.edited,
            detail={"changes": edits},
        )
    return result
