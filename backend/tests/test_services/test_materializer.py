"""Service tests: month materialization, template reapplication and deletion."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from ajl.core.errors import NotFoundError
from ajl.schemas.sinking import SinkingEventType, SinkingFundFields
from ajl.schemas.template import TemplateFields
from ajl.services import (
    audit_service,
    fund_service,
    instance_service,
    materializer,
    template_service,
)
from ajl.store import Collection


async def _create_template(ledger, *, year=2026, month=3, **overrides):
    fields = {"name": "Rent", "amount_default": "1200.00", "due_day": 5}
    fields.update(overrides)
    async with ledger.transaction() as tx:
        return await template_service.create_template(
            tx, TemplateFields(**fields), year=year, month=month
        )


async def _instances(ledger, year, month):
    async with ledger.transaction() as tx:
        return await tx.scan(Collection.instances, year=year, month=month)


@pytest.mark.asyncio
async def test_create_template_materializes_named_month(ledger):
    template = await _create_template(ledger, default_note="Transfer from savings")

    rows = await _instances(ledger, 2026, 3)
    assert len(rows) == 1
    instance = rows[0]
    assert instance.template_id == template.id
    assert instance.name_snapshot == "Rent"
    assert instance.amount == Decimal("1200.00")
    assert instance.due_date == date(2026, 3, 5)
    assert instance.note == "Transfer from savings"


@pytest.mark.asyncio
async def test_ensure_month_is_idempotent(ledger):
    await _create_template(ledger)
    await _create_template(ledger, name="Phone", amount_default="45.00", due_day=20)

    assert await ledger.ensure_month(2026, 4) == 2
    assert await ledger.ensure_month(2026, 4) == 0
    assert len(await _instances(ledger, 2026, 4)) == 2


@pytest.mark.asyncio
async def test_due_day_clamped_in_february(ledger):
    await _create_template(ledger, due_day=31)
    await ledger.ensure_month(2026, 2)

    (february,) = await _instances(ledger, 2026, 2)
    assert february.due_date == date(2026, 2, 28)


@pytest.mark.asyncio
async def test_concurrent_ensure_month_creates_once(ledger):
    await _create_template(ledger)
    await _create_template(ledger, name="Internet", due_day=12)

    results = await asyncio.gather(*(ledger.ensure_month(2026, 6) for _ in range(5)))

    assert len(await _instances(ledger, 2026, 6)) == 2
    # every caller shares the single run's result
    assert results == [2] * 5


@pytest.mark.asyncio
async def test_archived_template_not_materialized(ledger):
    template = await _create_template(ledger)
    async with ledger.transaction() as tx:
        await template_service.archive_template(tx, template.id)

    await ledger.ensure_month(2026, 4)
    assert await _instances(ledger, 2026, 4) == []
    assert len(await _instances(ledger, 2026, 3)) == 1


@pytest.mark.asyncio
async def test_materialization_is_audited(ledger):
    await _create_template(ledger)
    (instance,) = await _instances(ledger, 2026, 3)

    async with ledger.transaction() as tx:
        events = await audit_service.events_for_instance(tx, instance.id)
    assert [e.type for e in events] == ["created"]
    assert events[0].detail["source"] == "template"
    assert events[0].detail["amount"] == "1200.00"
    assert events[0].detail["due_date"] == "2026-03-05"


# --- Template edits reach only the named month ---


@pytest.mark.asyncio
async def test_update_template_leaves_other_months_alone(ledger):
    template = await _create_template(ledger)
    await ledger.ensure_month(2026, 4)

    async with ledger.transaction() as tx:
        await template_service.update_template(
            tx,
            template.id,
            TemplateFields(name="Rent", amount_default="1300.00", due_day=5),
            year=2026,
            month=4,
        )

    (march,) = await _instances(ledger, 2026, 3)
    (april,) = await _instances(ledger, 2026, 4)
    assert march.amount == Decimal("1200.00")
    assert april.amount == Decimal("1300.00")

    await ledger.ensure_month(2026, 5)
    (may,) = await _instances(ledger, 2026, 5)
    assert may.amount == Decimal("1300.00")


@pytest.mark.asyncio
async def test_apply_templates_refreshes_snapshots(ledger):
    template = await _create_template(ledger, category="Housing")
    async with ledger.transaction() as tx:
        stored = await tx.get(Collection.templates, template.id)
        await tx.put(
            Collection.templates, stored.model_copy(update={"name": "Loyer", "due_day": 28})
        )

    async with ledger.transaction() as tx:
        applied = await materializer.apply_templates(tx, 2026, 3)
    assert applied == 1

    (march,) = await _instances(ledger, 2026, 3)
    assert march.name_snapshot == "Loyer"
    assert march.category_snapshot == "Housing"
    assert march.due_date == date(2026, 3, 28)


# --- Template deletion ---


@pytest.mark.asyncio
async def test_delete_template_keeps_earlier_months(ledger):
    template = await _create_template(ledger)
    await ledger.ensure_month(2026, 4)
    await ledger.ensure_month(2026, 5)
    (march,) = await _instances(ledger, 2026, 3)

    async with ledger.transaction() as tx:
        await instance_service.add_payment(
            tx, march.id, amount=Decimal("200.00"), paid_date=date(2026, 3, 2)
        )
        removed = await template_service.delete_template(tx, template.id, year=2026, month=4)

    assert removed == 2
    assert len(await _instances(ledger, 2026, 3)) == 1
    assert await _instances(ledger, 2026, 4) == []
    assert await _instances(ledger, 2026, 5) == []
    async with ledger.transaction() as tx:
        assert await tx.get(Collection.templates, template.id) is None
        assert len(await tx.scan(Collection.payment_events, instance_id=march.id)) == 1


@pytest.mark.asyncio
async def test_delete_template_without_cutoff_removes_everything(ledger):
    template = await _create_template(ledger)
    await ledger.ensure_month(2026, 4)

    async with ledger.transaction() as tx:
        removed = await materializer.delete_template_from_month(tx, template.id)
    assert removed == 2
    async with ledger.transaction() as tx:
        assert await tx.scan(Collection.instances) == []


@pytest.mark.asyncio
async def test_delete_unknown_template(ledger):
    with pytest.raises(NotFoundError):
        async with ledger.transaction() as tx:
            await template_service.delete_template(tx, "missing", year=2026, month=3)


# --- Auto contributions ---


@pytest.mark.asyncio
async def test_ensure_month_records_one_auto_contribution(ledger):
    async with ledger.transaction() as tx:
        fund = await fund_service.create_fund(
            tx,
            SinkingFundFields(
                name="Car insurance", target_amount="1200.00", due_date=date(2027, 2, 1)
            ),
        )

    await ledger.ensure_month(2026, 3)
    await ledger.ensure_month(2026, 3)

    async with ledger.transaction() as tx:
        events = await tx.scan(Collection.sinking_events, fund_id=fund.id)
    assert len(events) == 1
    assert events[0].type == SinkingEventType.contribution
    assert events[0].event_date == date(2026, 3, 1)
    assert events[0].note == "Auto contribution"
    # 12 months from 2026-03-01 to 2027-02-01
    assert events[0].amount == Decimal("100.00")


@pytest.mark.asyncio
async def test_auto_contribution_skipped_when_disabled_or_funded(ledger):
    async with ledger.transaction() as tx:
        manual = await fund_service.create_fund(
            tx,
            SinkingFundFields(
                name="Gifts",
                target_amount="600.00",
                due_date=date(2026, 12, 1),
                auto_contribute=False,
            ),
        )
        funded = await fund_service.create_fund(
            tx,
            SinkingFundFields(name="Tires", target_amount="300.00", due_date=date(2026, 12, 1)),
        )
        await fund_service.add_event(
            tx,
            funded.id,
            event_type=SinkingEventType.contribution,
            amount=Decimal("300.00"),
            event_date=date(2026, 2, 10),
        )

    await ledger.ensure_month(2026, 3)

    async with ledger.transaction() as tx:
        assert await tx.scan(Collection.sinking_events, fund_id=manual.id) == []
        assert len(await tx.scan(Collection.sinking_events, fund_id=funded.id)) == 1
