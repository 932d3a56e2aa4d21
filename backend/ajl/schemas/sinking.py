"""Sinking fund schemas: savings goals, their events and projected views."""

import enum
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from ajl.core.calendar import utcnow
from ajl.schemas.common import Money, OptionalText, generate_id


class Cadence(str, enum.Enum):
    yearly = "yearly"
    quarterly = "quarterly"
    custom_months = "custom_months"


class SinkingEventType(str, enum.Enum):
    contribution = "CONTRIBUTION"
    withdrawal = "WITHDRAWAL"
    adjustment = "ADJUSTMENT"


class FundStatus(str, enum.Enum):
    due = "due"
    ready = "ready"
    behind = "behind"
    on_track = "on_track"


def resolve_months_per_cycle(cadence: Cadence | str, months_per_cycle) -> int:
    """Months in one fund cycle: quarterly 3, yearly 12, else the stored count (min 1)."""
    cadence = getattr(cadence, "value", cadence)
    if cadence == Cadence.yearly.value:
        return 12
    if cadence == Cadence.quarterly.value:
        return 3
    try:
        parsed = int(months_per_cycle)
    except (TypeError, ValueError):
        return 1
    return parsed if parsed >= 1 else 1


class SinkingFundFields(BaseModel):
    name: str
    category: OptionalText = None
    target_amount: Money = Field(ge=0)
    due_date: date
    cadence: Cadence = Cadence.yearly
    months_per_cycle: int = 12
    essential: bool = True
    active: bool = True
    auto_contribute: bool = True

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("cadence", mode="before")
    @classmethod
    def _lenient_cadence(cls, value):
        # unknown cadences fall back to yearly
        raw = str(getattr(value, "value", value) or "yearly").strip().lower()
        return raw if raw in {c.value for c in Cadence} else Cadence.yearly.value

    @model_validator(mode="after")
    def _resolve_cycle(self):
        self.months_per_cycle = resolve_months_per_cycle(self.cadence, self.months_per_cycle)
        return self


class SinkingFund(SinkingFundFields):
    id: str = Field(default_factory=generate_id)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class SinkingEvent(BaseModel):
    id: str = Field(default_factory=generate_id)
    fund_id: str
    amount: Money
    type: SinkingEventType
    event_date: date
    note: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class SinkingFundView(SinkingFund):
    """A fund projected against a reference month."""

    balance: Decimal
    monthly_contrib: Decimal
    months_remaining: int
    status: FundStatus
    progress_ratio: float
    expected_saved: Decimal
