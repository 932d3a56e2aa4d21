"""Month settings, process-wide settings and the action log."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field, field_validator

from ajl.core.calendar import utcnow
from ajl.schemas.common import Money

SORT_KEYS = ("due_date", "amount", "name", "status")


class MonthSettings(BaseModel):
    id: str
    year: int
    month: int = Field(ge=1, le=12)
    cash_start: Money = Field(ge=0)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class CashStartUpdate(BaseModel):
    year: int
    month: int = Field(ge=1, le=12)
    cash_start: Money = Field(ge=0)


class SettingsDefaults(BaseModel):
    sort: str = "due_date"
    due_soon_days: int = Field(
        default=7, validation_alias=AliasChoices("due_soon_days", "dueSoonDays")
    )
    default_period: str = Field(
        default="month", validation_alias=AliasChoices("default_period", "defaultPeriod")
    )

    @field_validator("sort", mode="before")
    @classmethod
    def _known_sort(cls, value):
        return value if value in SORT_KEYS else "due_date"

    @field_validator("due_soon_days", mode="before")
    @classmethod
    def _due_soon_range(cls, value):
        try:
            days = int(value)
        except (TypeError, ValueError):
            return 7
        return days if 1 <= days <= 31 else 7

    @field_validator("default_period", mode="before")
    @classmethod
    def _month_only(cls, value):
        return "month"


class AppSettings(BaseModel):
    defaults: SettingsDefaults = Field(default_factory=SettingsDefaults)
    categories: list[str] = Field(default_factory=list)

    @field_validator("categories", mode="before")
    @classmethod
    def _dedupe_categories(cls, value):
        if not isinstance(value, list):
            return []
        seen: list[str] = []
        for item in value:
            name = str(item or "").strip()
            if name and name not in seen:
                seen.append(name)
        return seen


class Meta(BaseModel):
    """Free-form keyed JSON value (settings and similar singletons)."""

    id: str
    value: dict = Field(default_factory=dict)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class ActionRecord(BaseModel):
    """Dispatched command with its stored result, keyed by action_id."""

    id: str
    type: str
    payload: dict = Field(default_factory=dict)
    status: str
    result: dict = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}
