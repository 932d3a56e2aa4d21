"""Month summary and stable v1 read payloads."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel

from ajl.schemas.sinking import SinkingEvent, SinkingFundView
from ajl.schemas.template import Template


class MonthSummary(BaseModel):
    required_month: Decimal
    paid_month: Decimal
    remaining_month: Decimal
    need_daily_exact: Decimal
    need_weekly_exact: Decimal
    need_daily_plan: Decimal
    need_weekly_plan: Decimal
    free_for_month: bool
    days_in_month: int


class VersionedPayload(BaseModel):
    app: str
    app_version: str
    schema_version: str
    generated_at: datetime


class SummaryRead(VersionedPayload):
    period: str
    filters: dict
    required_month: Decimal
    paid_month: Decimal
    remaining_month: Decimal
    need_daily_exact: Decimal
    need_weekly_exact: Decimal
    free_for_month: bool
    future_reserved: Decimal


class MonthItem(BaseModel):
    instance_id: str
    template_id: str
    name: str
    category: str | None = None
    amount: Decimal
    amount_paid: Decimal
    amount_remaining: Decimal
    due_date: date
    status: str
    paid_date: date | None = None
    autopay: bool
    essential: bool
    note: str | None = None


class MonthRead(VersionedPayload):
    period: str
    items: list[MonthItem]


class TemplatesRead(VersionedPayload):
    templates: list[Template]


class SinkingFundsRead(VersionedPayload):
    period: str
    funds: list[SinkingFundView]


class SinkingEventsRead(VersionedPayload):
    events: list[SinkingEvent]
