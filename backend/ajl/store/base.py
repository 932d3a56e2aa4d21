"""Storage abstraction for the ledger.

A Store persists entities in named collections and exposes them only through
transactions: every get/put/delete/scan/clear happens inside
``async with store.transaction() as tx``. Either all writes of a transaction
are committed or none are.
"""

import enum
from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any

from pydantic import BaseModel

from ajl.schemas.instance import Instance, InstanceEvent, PaymentEvent
from ajl.schemas.settings import ActionRecord, Meta, MonthSettings
from ajl.schemas.sinking import SinkingEvent, SinkingFund
from ajl.schemas.template import Template


class Collection(str, enum.Enum):
    templates = "templates"
    instances = "instances"
    payment_events = "payment_events"
    instance_events = "instance_events"
    sinking_funds = "sinking_funds"
    sinking_events = "sinking_events"
    month_settings = "month_settings"
    meta = "meta"
    actions = "actions"


ENTITY_TYPES: dict[Collection, type[BaseModel]] = {
    Collection.templates: Template,
    Collection.instances: Instance,
    Collection.payment_events: PaymentEvent,
    Collection.instance_events: InstanceEvent,
    Collection.sinking_funds: SinkingFund,
    Collection.sinking_events: SinkingEvent,
    Collection.month_settings: MonthSettings,
    Collection.meta: Meta,
    Collection.actions: ActionRecord,
}


def check_entity(collection: Collection, entity: BaseModel) -> None:
    expected = ENTITY_TYPES[collection]
    if not isinstance(entity, expected):
        raise TypeError(
            f"{collection.value} stores {expected.__name__}, got {type(entity).__name__}"
        )


class StoreTransaction(ABC):
    """Unit of work against a Store. Entities are keyed by their ``id``."""

    @abstractmethod
    async def get(self, collection: Collection, key: str) -> Any | None:
        """Load one entity by id. Returns None if missing."""
        ...

    @abstractmethod
    async def put(self, collection: Collection, entity: BaseModel) -> None:
        """Insert or replace an entity under ``entity.id``."""
        ...

    @abstractmethod
    async def delete(self, collection: Collection, key: str) -> bool:
        """Delete by id. Returns False if nothing was there."""
        ...

    @abstractmethod
    async def scan(self, collection: Collection, **filters: Any) -> list[Any]:
        """Return every entity whose fields equal all given filter values.

        Order is unspecified; callers sort.
        """
        ...

    @abstractmethod
    async def clear(self, collection: Collection) -> None:
        """Delete every entity in a collection."""
        ...


class Store(ABC):
    """Transactional key-collection persistence."""

    backend_name = "abstract"

    async def initialize(self) -> None:
        """Prepare the backing storage (create tables, load the snapshot)."""

    async def close(self) -> None:
        """Release connections and file handles."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[StoreTransaction]:
        """Open an atomic unit of work.

        Leaving the block normally commits; an exception rolls back and is
        re-raised. Persistence failures surface as StorageError.
        """
        ...
