"""Shared schema pieces: money type, ids, response envelope."""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")

CENT = Decimal("0.01")


def generate_id() -> str:
    return str(uuid.uuid4())


def to_cents(value: Decimal) -> Decimal:
    """Round a monetary amount to whole cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# Stored money: always quantized to cents on the way in.
Money = Annotated[Decimal, AfterValidator(to_cents)]

OptionalText = Annotated[str | None, AfterValidator(blank_to_none)]


class Envelope(BaseModel, Generic[T]):
    """Success envelope wrapped around every API payload."""

    ok: bool = True
    data: T
