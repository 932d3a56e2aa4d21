"""Indexed store: one SQL table per collection, via SQLAlchemy async."""

import enum
import logging
from contextlib import asynccontextmanager
from typing import Any

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ajl.core.errors import StorageError
from ajl.models.base import Base
from ajl.models.instance import InstanceEventRow, InstanceRow, PaymentEventRow
from ajl.models.settings import ActionRow, MetaRow, MonthSettingsRow
from ajl.models.sinking import SinkingEventRow, SinkingFundRow
from ajl.models.template import TemplateRow
from ajl.store.base import ENTITY_TYPES, Collection, Store, StoreTransaction, check_entity

logger = logging.getLogger("ajl.store")

ROW_TYPES: dict[Collection, type[Base]] = {
    Collection.templates: TemplateRow,
    Collection.instances: InstanceRow,
    Collection.payment_events: PaymentEventRow,
    Collection.instance_events: InstanceEventRow,
    Collection.sinking_funds: SinkingFundRow,
    Collection.sinking_events: SinkingEventRow,
    Collection.month_settings: MonthSettingsRow,
    Collection.meta: MetaRow,
    Collection.actions: ActionRow,
}


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


class SqlTransaction(StoreTransaction):
    def __init__(self, session: AsyncSession):
        self._session = session

    def _to_entity(self, collection: Collection, row) -> BaseModel:
        return ENTITY_TYPES[collection].model_validate(row, from_attributes=True)

    def _to_row(self, collection: Collection, entity: BaseModel):
        row_type = ROW_TYPES[collection]
        data = entity.model_dump()
        values = {c.key: _plain(data.get(c.key)) for c in row_type.__table__.columns}
        return row_type(**values)

    async def get(self, collection: Collection, key: str):
        row = await self._session.get(ROW_TYPES[collection], key)
        return None if row is None else self._to_entity(collection, row)

    async def put(self, collection: Collection, entity: BaseModel) -> None:
        check_entity(collection, entity)
        await self._session.merge(self._to_row(collection, entity))
        await self._session.flush()

    async def delete(self, collection: Collection, key: str) -> bool:
        row = await self._session.get(ROW_TYPES[collection], key)
        if row is None:
            return False
        await self._session.delete(row)
        await self._session.flush()
        return True

    async def scan(self, collection: Collection, **filters: Any) -> list:
        stmt = select(ROW_TYPES[collection]).filter_by(
            **{k: _plain(v) for k, v in filters.items()}
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(collection, row) for row in result.scalars().all()]

    async def clear(self, collection: Collection) -> None:
        await self._session.execute(delete(ROW_TYPES[collection]))


class SqlStore(Store):
    """Multi-table store. The instances table enforces (template_id, year, month)."""

    backend_name = "sql"

    def __init__(self, database_url: str, *, echo: bool = False, engine: AsyncEngine | None = None):
        if engine is None:
            kwargs: dict[str, Any] = {"echo": echo}
            if ":memory:" in database_url:
                kwargs["poolclass"] = StaticPool
                kwargs["connect_args"] = {"check_same_thread": False}
            engine = create_async_engine(database_url, **kwargs)
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )

    async def initialize(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise StorageError("Failed to initialize database", {"reason": str(exc)}) from exc
        logger.info("SQL store ready url=%s", self._engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def transaction(self):
        session = self._session_factory()
        try:
            async with session.begin():
                yield SqlTransaction(session)
        except SQLAlchemyError as exc:
            logger.error("SQL transaction rolled back: %s", exc)
            raise StorageError("Storage write failed", {"reason": str(exc)}) from exc
        finally:
            await session.close()
