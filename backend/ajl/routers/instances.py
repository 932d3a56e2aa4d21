"""Instances router: month instances, their payments and audit trail.

Every month read first materializes the month (``Ledger.ensure_month``).

Endpoints:
- GET /ensure-month: materialize (year, month)
- GET /instances: month instances, accounting-attached
- PATCH /instances/{instance_id}: partial field update
- GET /instances/{instance_id}/events: audit trail, newest first
- GET /instance-events: month audit trail with instance names
- POST /instances/{instance_id}/mark-paid: pay the remainder, mark paid
- POST /instances/{instance_id}/payments: record a payment
- POST /instances/{instance_id}/undo-paid: clear payments, back to pending
- GET /payments: month payments, newest first
- DELETE /payments/{payment_id}: remove one payment
"""

from fastapi import APIRouter, Body, Depends, Query

from ajl.dependencies import get_ledger, required_month
from ajl.schemas.common import Envelope
from ajl.schemas.instance import (
    InstanceEvent,
    InstanceEventRead,
    InstancePatch,
    InstanceRead,
    MarkPaidRequest,
    PaymentCreate,
    PaymentRead,
)
from ajl.services import accounting, audit_service, instance_service
from ajl.services.ledger import Ledger

router = APIRouter(tags=["instances"])


@router.get("/ensure-month", response_model=Envelope[dict])
async def ensure_month(
    period: tuple[int, int] = Depends(required_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    created = await ledger.ensure_month(year, month)
    return Envelope(data={"year": year, "month": month, "created": created})


@router.get("/instances", response_model=Envelope[list[InstanceRead]])
async def list_instances(
    period: tuple[int, int] = Depends(required_month),
    ledger: Ledger = Depends(get_ledger),
):
    """Instances sorted by due date then name. Materializes the month first."""
    year, month = period
    await ledger.ensure_month(year, month)
    async with ledger.transaction() as tx:
        instances = await accounting.get_instances(tx, year, month)
    return Envelope(data=instances)


@router.patch("/instances/{instance_id}", response_model=Envelope[InstanceRead])
async def patch_instance(
    instance_id: str,
    body: InstancePatch,
    ledger: Ledger = Depends(get_ledger),
):
    async with ledger.transaction() as tx:
        instance = await instance_service.patch(tx, instance_id, body, today=ledger.today())
    return Envelope(data=instance)


@router.get("/instances/{instance_id}/events", response_model=Envelope[list[InstanceEvent]])
async def instance_events(instance_id: str, ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        await accounting.get_instance(tx, instance_id)
        events = await audit_service.events_for_instance(tx, instance_id)
    return Envelope(data=events)


@router.get("/instance-events", response_model=Envelope[list[InstanceEventRead]])
async def month_events(
    period: tuple[int, int] = Depends(required_month),
    limit: int = Query(default=200, ge=1, le=1000),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    async with ledger.transaction() as tx:
        events = await audit_service.events_for_month(tx, year, month, limit=limit)
    return Envelope(data=events)


@router.post("/instances/{instance_id}/mark-paid", response_model=Envelope[InstanceRead])
async def mark_paid(
    instance_id: str,
    body: MarkPaidRequest | None = Body(default=None),
    ledger: Ledger = Depends(get_ledger),
):
    paid_date = (body.paid_date if body else None) or ledger.today()
    async with ledger.transaction() as tx:
        instance = await instance_service.mark_paid(tx, instance_id, paid_date=paid_date)
    return Envelope(data=instance)


@router.post("/instances/{instance_id}/payments", response_model=Envelope[dict])
async def add_payment(
    instance_id: str,
    body: PaymentCreate,
    ledger: Ledger = Depends(get_ledger),
):
    async with ledger.transaction() as tx:
        payment, instance = await instance_service.add_payment(
            tx, instance_id, amount=body.amount, paid_date=body.paid_date or ledger.today()
        )
    return Envelope(data={"payment": payment, "instance": instance})


@router.post("/instances/{instance_id}/undo-paid", response_model=Envelope[InstanceRead])
async def undo_paid(instance_id: str, ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        instance = await instance_service.undo_paid(tx, instance_id)
    return Envelope(data=instance)


@router.get("/payments", response_model=Envelope[list[PaymentRead]])
async def list_payments(
    period: tuple[int, int] = Depends(required_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    async with ledger.transaction() as tx:
        payments = await accounting.get_payments_for_month(tx, year, month)
    return Envelope(data=payments)


@router.delete("/payments/{payment_id}", response_model=Envelope[dict])
async def delete_payment(payment_id: str, ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        instance = await instance_service.undo_payment(tx, payment_id)
    return Envelope(data={"payment_id": payment_id, "instance": instance})
