"""Ledger: the single entry point through which all engine work runs.

The store is injected; there is no module-level handle. Every operation
opens ``Ledger.transaction()``, which holds one lock for the lifetime of the
store transaction, so engine operations never interleave. Read-triggered
materialization goes through ``ensure_month``, which additionally collapses
concurrent callers for the same month into one shared task.
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import date

from ajl.core.concurrency import SingleFlight
from ajl.core.errors import ValidationError
from ajl.services import materializer
from ajl.store import Store

logger = logging.getLogger("ajl")


class Ledger:
    def __init__(self, store: Store, *, today: Callable[[], date] = date.today):
        self.store = store
        self._today = today
        self._lock = asyncio.Lock()
        self._month_flight = SingleFlight()

    def today(self) -> date:
        return self._today()

    def current_month(self) -> tuple[int, int]:
        today = self.today()
        return today.year, today.month

    def resolve_month(self, year: int | None, month: int | None) -> tuple[int, int]:
        """Fill an absent (year, month) with the current month."""
        if year is None and month is None:
            return self.current_month()
        if year is None or month is None:
            raise ValidationError("year and month must be given together", {"year": year, "month": month})
        return year, month

    @asynccontextmanager
    async def transaction(self):
        async with self._lock:
            async with self.store.transaction() as tx:
                yield tx

    async def ensure_month(self, year: int, month: int) -> int:
        """Materialize (year, month); returns how many instances were created."""

        async def run() -> int:
            async with self.transaction() as tx:
                created = await materializer.ensure_month(tx, year, month)
            return len(created)

        return await self._month_flight.run((year, month), run)
