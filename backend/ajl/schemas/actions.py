"""Action commands accepted by POST /v1/actions.

Each command is its own model tagged by ``type``; ``Action`` is the closed
union of all of them, so an unknown tag fails validation before anything
touches the store.
"""

from datetime import date
from typing import Annotated, Literal, Union, get_args

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, field_validator, model_validator

from ajl.schemas.common import Money, OptionalText
from ajl.schemas.sinking import SinkingEventType, SinkingFundFields
from ajl.schemas.template import TemplateFields


class MonthScoped(BaseModel):
    """Optional target month; the current month is used when absent."""

    year: int | None = None
    month: int | None = Field(default=None, ge=1, le=12)


class MarkPaid(BaseModel):
    type: Literal["MARK_PAID"]
    instance_id: str = Field(min_length=1)
    paid_date: date | None = None


class MarkPending(BaseModel):
    type: Literal["MARK_PENDING"]
    instance_id: str = Field(min_length=1)


class SkipInstance(BaseModel):
    type: Literal["SKIP_INSTANCE"]
    instance_id: str = Field(min_length=1)


class AddPayment(BaseModel):
    type: Literal["ADD_PAYMENT"]
    instance_id: str = Field(min_length=1)
    amount: Money = Field(gt=0)
    paid_date: date | None = None


class UndoPayment(BaseModel):
    type: Literal["UNDO_PAYMENT"]
    payment_id: str = Field(min_length=1)


class UpdateInstanceFields(BaseModel):
    type: Literal["UPDATE_INSTANCE_FIELDS"]
    instance_id: str = Field(min_length=1)
    amount: Money | None = Field(default=None, ge=0)
    name: str | None = Field(default=None, validation_alias=AliasChoices("name", "name_snapshot"))
    category: OptionalText = Field(
        default=None, validation_alias=AliasChoices("category", "category_snapshot")
    )
    due_date: date | None = None
    note: str | None = None

    @model_validator(mode="after")
    def _has_changes(self):
        if not self.model_fields_set - {"type", "instance_id"}:
            raise ValueError("No fields to update")
        return self


class CreateTemplate(TemplateFields, MonthScoped):
    type: Literal["CREATE_TEMPLATE"]


class UpdateTemplate(TemplateFields, MonthScoped):
    type: Literal["UPDATE_TEMPLATE"]
    template_id: str = Field(min_length=1, validation_alias=AliasChoices("template_id", "id"))


class ArchiveTemplate(BaseModel):
    type: Literal["ARCHIVE_TEMPLATE"]
    template_id: str = Field(min_length=1, validation_alias=AliasChoices("template_id", "id"))


class DeleteTemplate(MonthScoped):
    type: Literal["DELETE_TEMPLATE"]
    template_id: str = Field(min_length=1, validation_alias=AliasChoices("template_id", "id"))


class ApplyTemplates(BaseModel):
    type: Literal["APPLY_TEMPLATES"]
    year: int
    month: int = Field(ge=1, le=12)


class SetCashStart(BaseModel):
    type: Literal["SET_CASH_START"]
    year: int
    month: int = Field(ge=1, le=12)
    cash_start: Money = Field(ge=0)


class CreateFund(SinkingFundFields):
    type: Literal["CREATE_FUND"]


class UpdateFund(SinkingFundFields):
    type: Literal["UPDATE_FUND"]
    fund_id: str = Field(min_length=1, validation_alias=AliasChoices("fund_id", "id"))


class ArchiveFund(BaseModel):
    type: Literal["ARCHIVE_FUND"]
    fund_id: str = Field(min_length=1, validation_alias=AliasChoices("fund_id", "id"))


class DeleteFund(BaseModel):
    type: Literal["DELETE_FUND"]
    fund_id: str = Field(min_length=1, validation_alias=AliasChoices("fund_id", "id"))


class AddSinkingEvent(BaseModel):
    type: Literal["ADD_SINKING_EVENT"]
    fund_id: str = Field(min_length=1)
    event_type: SinkingEventType
    amount: Money
    event_date: date | None = None
    note: str | None = None

    @field_validator("event_type", mode="before")
    @classmethod
    def _upper(cls, value):
        return str(getattr(value, "value", value) or "").strip().upper()

    @model_validator(mode="after")
    def _amount_sign(self):
        if self.amount == 0:
            raise ValueError("amount must be non-zero")
        if self.event_type != SinkingEventType.adjustment and self.amount < 0:
            raise ValueError("amount must be positive")
        return self


class MarkFundPaid(BaseModel):
    type: Literal["MARK_FUND_PAID"]
    fund_id: str = Field(min_length=1)
    amount: Money | None = Field(default=None, gt=0)
    event_date: date | None = None


class GenerateMonth(BaseModel):
    type: Literal["GENERATE_MONTH"]
    year: int
    month: int = Field(ge=1, le=12)


Action = Annotated[
    Union[
        MarkPaid,
        MarkPending,
        SkipInstance,
        AddPayment,
        UndoPayment,
        UpdateInstanceFields,
        CreateTemplate,
        UpdateTemplate,
        ArchiveTemplate,
        DeleteTemplate,
        ApplyTemplates,
        SetCashStart,
        CreateFund,
        UpdateFund,
        ArchiveFund,
        DeleteFund,
        AddSinkingEvent,
        MarkFundPaid,
        GenerateMonth,
    ],
    Field(discriminator="type"),
]

action_adapter: TypeAdapter[Action] = TypeAdapter(Action)

# Annotated[Union[...], Field] -> the member classes
ACTION_TYPES: tuple[type[BaseModel], ...] = get_args(get_args(Action)[0])


class ActionEnvelope(BaseModel):
    """Outer shape of a dispatched command; the rest of the body is the payload."""

    action_id: str
    type: str

    @field_validator("action_id", "type", mode="before")
    @classmethod
    def _required(cls, value, info):
        value = str(value or "").strip()
        if not value:
            raise ValueError(f"{info.field_name} is required")
        return value
