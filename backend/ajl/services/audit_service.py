"""Audit service: append-only instance event logging.

All writes are append-only. No update or delete methods are exposed; only a
full reset or a backup import removes events.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from ajl.schemas.instance import InstanceEvent, InstanceEventRead, InstanceEventType
from ajl.store import Collection, StoreTransaction


def _jsonable(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


async def log_instance_event(
    tx: StoreTransaction,
    *,
    instance_id: str,
    event_type: InstanceEventType,
    detail: dict | None = None,
) -> InstanceEvent:
    """Append an audit event for one instance."""
    event = InstanceEvent(
        instance_id=instance_id,
        type=event_type.value,
        detail=_jsonable(detail) if detail is not None else None,
    )
    await tx.put(Collection.instance_events, event)
    return event


async def events_for_instance(tx: StoreTransaction, instance_id: str) -> list[InstanceEvent]:
    """Audit trail for one instance, newest first."""
    events = await tx.scan(Collection.instance_events, instance_id=instance_id)
    return sorted(events, key=lambda e: e.created_at, reverse=True)


async def events_for_month(
    tx: StoreTransaction,
    year: int,
    month: int,
    *,
    limit: int = 200,
) -> list[InstanceEventRead]:
    """Audit trail for every instance of a month, joined with the instance name."""
    instances = await tx.scan(Collection.instances, year=year, month=month)
    names = {i.id: i.name_snapshot for i in instances}
    events: list[InstanceEventRead] = []
    for instance_id, name in names.items():
        for event in await tx.scan(Collection.instance_events, instance_id=instance_id):
            events.append(InstanceEventRead(**event.model_dump(), name=name))
    events.sort(key=lambda e: e.created_at, reverse=True)
    return events[:limit]
