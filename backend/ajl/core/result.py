"""Explicit success/failure values for fallible engine operations.

Callers inspect ``result.ok`` instead of catching exceptions; the error side
always carries a typed ``LedgerError``.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from ajl.core.errors import LedgerError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Err:
    error: LedgerError
    ok: bool = False


Result = Union[Ok[T], Err]
