"""Instance, payment and instance-audit schemas."""

import enum
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from ajl.core.calendar import utcnow
from ajl.schemas.common import Money, OptionalText, generate_id


class InstanceStatus(str, enum.Enum):
    pending = "pending"
    paid = "paid"
    skipped = "skipped"


class DerivedStatus(str, enum.Enum):
    pending = "pending"
    partial = "partial"
    paid = "paid"
    skipped = "skipped"


class InstanceEventType(str, enum.Enum):
    created = "created"
    edited = "edited"
    status_changed = "status_changed"
    skipped = "skipped"
    unskipped = "unskipped"
    note_updated = "note_updated"
    marked_done = "marked_done"
    log_update = "log_update"
    update_removed = "update_removed"


class Instance(BaseModel):
    """One template's occurrence in one (year, month).

    name/category/amount/autopay/essential are snapshots taken from the
    template when the month was materialized.
    """

    id: str = Field(default_factory=generate_id)
    template_id: str
    year: int
    month: int = Field(ge=1, le=12)
    name_snapshot: str
    category_snapshot: str | None = None
    amount: Money = Field(ge=0)
    due_date: date
    autopay_snapshot: bool = False
    essential_snapshot: bool = True
    status: InstanceStatus = InstanceStatus.pending
    paid_date: date | None = None
    note: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class InstanceRead(Instance):
    """Instance joined with its payment events."""

    amount_paid: Decimal
    amount_remaining: Decimal
    status_derived: DerivedStatus


class PaymentEvent(BaseModel):
    id: str = Field(default_factory=generate_id)
    instance_id: str
    amount: Money = Field(gt=0)
    paid_date: date
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class PaymentRead(PaymentEvent):
    name_snapshot: str
    year: int
    month: int


class InstanceEvent(BaseModel):
    """Append-only audit record of a mutation on an instance."""

    id: str = Field(default_factory=generate_id)
    instance_id: str
    type: str
    detail: dict | None = None
    created_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}


class InstanceEventRead(InstanceEvent):
    name: str | None = None


class PaymentCreate(BaseModel):
    amount: Money = Field(gt=0)
    paid_date: date | None = None


class MarkPaidRequest(BaseModel):
    paid_date: date | None = None


class InstancePatch(BaseModel):
    """Partial instance update. Only fields present in the body are applied."""

    amount: Money | None = Field(default=None, ge=0)
    name: str | None = None
    category: OptionalText = None
    due_date: date | None = None
    status: InstanceStatus | None = None
    paid_date: date | None = None
    note: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _snapshot_aliases(cls, data):
        # name_snapshot / category_snapshot are accepted as synonyms
        if isinstance(data, dict):
            data = dict(data)
            if "name" not in data and "name_snapshot" in data:
                data["name"] = data.pop("name_snapshot")
            if "category" not in data and "category_snapshot" in data:
                data["category"] = data.pop("category_snapshot")
        return data

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value
