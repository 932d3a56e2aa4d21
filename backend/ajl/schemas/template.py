"""Template schemas: recurring bill definitions."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ajl.core.calendar import utcnow
from ajl.schemas.common import Money, OptionalText, generate_id


class TemplateFields(BaseModel):
    """User-editable template fields, validated the same way on every path."""

    name: str
    category: OptionalText = None
    amount_default: Money = Field(ge=0)
    due_day: int = Field(ge=1, le=31)
    autopay: bool = False
    essential: bool = True
    active: bool = True
    default_note: OptionalText = None
    match_payee_key: OptionalText = None
    match_amount_tolerance: Money = Field(default=Decimal("0.00"), ge=0)

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("match_amount_tolerance", mode="before")
    @classmethod
    def _empty_tolerance(cls, value):
        if value is None or value == "":
            return Decimal("0")
        return value


class Template(TemplateFields):
    id: str = Field(default_factory=generate_id)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}
