"""Action dispatcher: the command path into the ledger.

A command body is ``{"action_id", "type", ...payload}``. Dispatch:

1. validates the envelope (action_id and type are required);
2. replays the stored result if the action_id was seen before;
3. parses the payload into exactly one ``Action`` variant;
4. runs its handler and records the outcome, all in one transaction.

Failures come back as ``Err`` values, never as raised exceptions. Validation
failures leave the store untouched, including the action log.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ajl.core.errors import LedgerError, StorageError, ValidationError, error_from_dict, from_pydantic
from ajl.core.result import Err, Ok, Result
from ajl.schemas.actions import (
    ActionEnvelope,
    AddPayment,
    AddSinkingEvent,
    ApplyTemplates,
    ArchiveFund,
    ArchiveTemplate,
    CreateFund,
    CreateTemplate,
    DeleteFund,
    DeleteTemplate,
    GenerateMonth,
    MarkFundPaid,
    MarkPaid,
    MarkPending,
    SetCashStart,
    SkipInstance,
    UndoPayment,
    UpdateFund,
    UpdateInstanceFields,
    UpdateTemplate,
    action_adapter,
)
from ajl.schemas.instance import InstancePatch
from ajl.schemas.settings import ActionRecord
from ajl.schemas.sinking import SinkingFundFields
from ajl.schemas.template import TemplateFields
from ajl.services import (
    fund_service,
    instance_service,
    materializer,
    settings_service,
    sinking_service,
    template_service,
)
from ajl.services.ledger import Ledger
from ajl.store import Collection, StoreTransaction

logger = logging.getLogger("ajl.actions")

_RESULT = TypeAdapter(dict[str, Any])


class ActionContext:
    """What a handler may know beyond its payload."""

    def __init__(self, ledger: Ledger):
        self.today: date = ledger.today()
        self._ledger = ledger

    def month(self, year: int | None, month: int | None) -> tuple[int, int]:
        return self._ledger.resolve_month(year, month)

    async def fund_view(self, tx: StoreTransaction, fund_id: str):
        year, month = self._ledger.current_month()
        return await sinking_service.get_fund_view(tx, fund_id, date(year, month, 1))


Handler = Callable[[StoreTransaction, Any, ActionContext], Awaitable[dict]]


async def _mark_paid(tx, action: MarkPaid, ctx: ActionContext) -> dict:
    paid_date = action.paid_date or ctx.today
    return {"instance": await instance_service.mark_paid(tx, action.instance_id, paid_date=paid_date)}


async def _mark_pending(tx, action: MarkPending, ctx: ActionContext) -> dict:
    return {"instance": await instance_service.mark_pending(tx, action.instance_id)}


async def _skip_instance(tx, action: SkipInstance, ctx: ActionContext) -> dict:
    return {"instance": await instance_service.skip(tx, action.instance_id)}


async def _add_payment(tx, action: AddPayment, ctx: ActionContext) -> dict:
    payment, instance = await instance_service.add_payment(
        tx, action.instance_id, amount=action.amount, paid_date=action.paid_date or ctx.today
    )
    return {"payment": payment, "instance": instance}


async def _undo_payment(tx, action: UndoPayment, ctx: ActionContext) -> dict:
    instance = await instance_service.undo_payment(tx, action.payment_id)
    return {"payment_id": action.payment_id, "instance": instance}


async def _update_instance_fields(tx, action: UpdateInstanceFields, ctx: ActionContext) -> dict:
    given = action.model_fields_set - {"type", "instance_id"}
    try:
        patch = InstancePatch.model_validate({field: getattr(action, field) for field in given})
    except PydanticValidationError as exc:
        raise from_pydantic(exc) from exc
    instance = await instance_service.patch(tx, action.instance_id, patch, today=ctx.today)
    return {"instance": instance}


def _template_fields(action) -> TemplateFields:
    return TemplateFields.model_validate(action.model_dump(include=set(TemplateFields.model_fields)))


async def _create_template(tx, action: CreateTemplate, ctx: ActionContext) -> dict:
    year, month = ctx.month(action.year, action.month)
    template = await template_service.create_template(
        tx, _template_fields(action), year=year, month=month
    )
    return {"template": template}


async def _update_template(tx, action: UpdateTemplate, ctx: ActionContext) -> dict:
    year, month = ctx.month(action.year, action.month)
    template = await template_service.update_template(
        tx, action.template_id, _template_fields(action), year=year, month=month
    )
    return {"template": template}


async def _archive_template(tx, action: ArchiveTemplate, ctx: ActionContext) -> dict:
    return {"template": await template_service.archive_template(tx, action.template_id)}


async def _delete_template(tx, action: DeleteTemplate, ctx: ActionContext) -> dict:
    year, month = ctx.month(action.year, action.month)
    removed = await template_service.delete_template(tx, action.template_id, year=year, month=month)
    return {"template_id": action.template_id, "removed_instances": removed}


async def _apply_templates(tx, action: ApplyTemplates, ctx: ActionContext) -> dict:
    applied = await materializer.apply_templates(tx, action.year, action.month)
    return {"year": action.year, "month": action.month, "applied": applied}


async def _set_cash_start(tx, action: SetCashStart, ctx: ActionContext) -> dict:
    settings = await settings_service.set_cash_start(
        tx, action.year, action.month, action.cash_start
    )
    return {"month_settings": settings}


def _fund_fields(action) -> SinkingFundFields:
    return SinkingFundFields.model_validate(
        action.model_dump(include=set(SinkingFundFields.model_fields))
    )


async def _create_fund(tx, action: CreateFund, ctx: ActionContext) -> dict:
    fund = await fund_service.create_fund(tx, _fund_fields(action))
    return {"fund": await ctx.fund_view(tx, fund.id)}


async def _update_fund(tx, action: UpdateFund, ctx: ActionContext) -> dict:
    fund = await fund_service.update_fund(tx, action.fund_id, _fund_fields(action))
    return {"fund": await ctx.fund_view(tx, fund.id)}


async def _archive_fund(tx, action: ArchiveFund, ctx: ActionContext) -> dict:
    fund = await fund_service.archive_fund(tx, action.fund_id)
    return {"fund": await ctx.fund_view(tx, fund.id)}


async def _delete_fund(tx, action: DeleteFund, ctx: ActionContext) -> dict:
    removed = await fund_service.delete_fund(tx, action.fund_id)
    return {"fund_id": action.fund_id, "removed_events": removed}


async def _add_sinking_event(tx, action: AddSinkingEvent, ctx: ActionContext) -> dict:
    event = await fund_service.add_event(
        tx,
        action.fund_id,
        event_type=action.event_type,
        amount=action.amount,
        event_date=action.event_date or ctx.today,
        note=action.note,
    )
    return {"event": event, "fund": await ctx.fund_view(tx, action.fund_id)}


async def _mark_fund_paid(tx, action: MarkFundPaid, ctx: ActionContext) -> dict:
    event, fund = await fund_service.mark_fund_paid(
        tx, action.fund_id, event_date=action.event_date or ctx.today, amount=action.amount
    )
    return {"event": event, "fund": await ctx.fund_view(tx, fund.id)}


async def _generate_month(tx, action: GenerateMonth, ctx: ActionContext) -> dict:
    created = await materializer.ensure_month(tx, action.year, action.month)
    return {"year": action.year, "month": action.month, "created": len(created)}


HANDLERS: dict[type[BaseModel], Handler] = {
    MarkPaid: _mark_paid,
    MarkPending: _mark_pending,
    SkipInstance: _skip_instance,
    AddPayment: _add_payment,
    UndoPayment: _undo_payment,
    UpdateInstanceFields: _update_instance_fields,
    CreateTemplate: _create_template,
    UpdateTemplate: _update_template,
    ArchiveTemplate: _archive_template,
    DeleteTemplate: _delete_template,
    ApplyTemplates: _apply_templates,
    SetCashStart: _set_cash_start,
    CreateFund: _create_fund,
    UpdateFund: _update_fund,
    ArchiveFund: _archive_fund,
    DeleteFund: _delete_fund,
    AddSinkingEvent: _add_sinking_event,
    MarkFundPaid: _mark_fund_paid,
    GenerateMonth: _generate_month,
}


def _replay(record: ActionRecord) -> Result:
    if record.status == "ok":
        return Ok(record.result)
    return Err(error_from_dict(record.result))


def _parse(body: dict):
    payload = {k: v for k, v in body.items() if k != "action_id"}
    try:
        return action_adapter.validate_python(payload)
    except PydanticValidationError as exc:
        raise from_pydantic(exc, "Invalid action") from exc


async def dispatch(ledger: Ledger, body: Any) -> Result:
    """Run one command. Returns Ok(result dict) or Err(LedgerError)."""
    if not isinstance(body, dict):
        return Err(ValidationError("Action body must be a JSON object"))
    try:
        envelope = ActionEnvelope.model_validate(body)
    except PydanticValidationError as exc:
        return Err(from_pydantic(exc))

    try:
        async with ledger.transaction() as tx:
            existing = await tx.get(Collection.actions, envelope.action_id)
            if existing is not None:
                logger.info("action replay action_id=%s type=%s", existing.id, existing.type)
                return _replay(existing)

            action = _parse(body)
            ctx = ActionContext(ledger)
            result = _RESULT.dump_python(await HANDLERS[type(action)](tx, action, ctx), mode="json")
            await tx.put(
                Collection.actions,
                ActionRecord(
                    id=envelope.action_id,
                    type=envelope.type,
                    payload=_RESULT.dump_python(body, mode="json"),
                    status="ok",
                    result=result,
                ),
            )
    except (ValidationError, StorageError) as exc:
        logger.info("action rejected action_id=%s code=%s", envelope.action_id, exc.code)
        return Err(exc)
    except LedgerError as exc:
        await _record_failure(ledger, envelope, body, exc)
        return Err(exc)

    logger.info("action ok action_id=%s type=%s", envelope.action_id, envelope.type)
    return Ok(result)


async def _record_failure(
    ledger: Ledger, envelope: ActionEnvelope, body: dict, exc: LedgerError
) -> None:
    """Remember a failed (but well-formed) action so a retry replays the same error."""
    async with ledger.transaction() as tx:
        await tx.put(
            Collection.actions,
            ActionRecord(
                id=envelope.action_id,
                type=envelope.type,
                payload=_RESULT.dump_python(body, mode="json"),
                status="error",
                result=_RESULT.dump_python(exc.to_dict(), mode="json"),
            ),
        )
    logger.info("action failed action_id=%s code=%s", envelope.action_id, exc.code)
