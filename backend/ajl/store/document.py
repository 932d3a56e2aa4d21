"""Document store: the whole ledger as one JSON snapshot.

Every transaction works on a private copy of the snapshot and, on commit,
writes the full document to a temp file which then replaces the target.
With ``path=None`` nothing touches disk, which is what tests use.
"""

import copy
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ajl.core.calendar import utcnow
from ajl.core.errors import StorageError
from ajl.core.result import Err, Ok, Result
from ajl.store.base import ENTITY_TYPES, Collection, Store, StoreTransaction, check_entity

logger = logging.getLogger("ajl.store")

SNAPSHOT_VERSION = 1


def empty_collections() -> dict[str, dict[str, dict]]:
    return {c.value: {} for c in Collection}


def decode_snapshot(raw: str) -> Result:
    """Parse and validate a serialized snapshot.

    Returns Ok(collections) or Err(StorageError) when the document is not
    valid JSON or has the wrong shape. Records that fail validation are
    dropped with a warning and the rest are kept. Unknown collections are
    dropped.
    """
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as exc:
        return Err(StorageError("Snapshot is not valid JSON", {"reason": str(exc)}))
    if not isinstance(doc, dict) or not isinstance(doc.get("collections"), dict):
        return Err(StorageError("Snapshot has no collections"))

    collections = empty_collections()
    for collection in Collection:
        records = doc["collections"].get(collection.value, {})
        if not isinstance(records, dict):
            return Err(StorageError("Malformed collection", {"collection": collection.value}))
        entity_type = ENTITY_TYPES[collection]
        for key, record in records.items():
            try:
                entity = entity_type.model_validate(record)
            except PydanticValidationError as exc:
                logger.warning(
                    "Dropping malformed record collection=%s id=%s errors=%d",
                    collection.value,
                    key,
                    exc.error_count(),
                )
                continue
            collections[collection.value][key] = entity.model_dump(mode="json")
    return Ok(collections)


class DocumentTransaction(StoreTransaction):
    def __init__(self, collections: dict[str, dict[str, dict]]):
        self._collections = collections
        self.dirty = False

    def _records(self, collection: Collection) -> dict[str, dict]:
        return self._collections[collection.value]

    async def get(self, collection: Collection, key: str):
        record = self._records(collection).get(key)
        if record is None:
            return None
        return ENTITY_TYPES[collection].model_validate(record)

    async def put(self, collection: Collection, entity: BaseModel) -> None:
        check_entity(collection, entity)
        fields = set(ENTITY_TYPES[collection].model_fields)
        self._records(collection)[entity.id] = entity.model_dump(mode="json", include=fields)
        self.dirty = True

    async def delete(self, collection: Collection, key: str) -> bool:
        removed = self._records(collection).pop(key, None) is not None
        self.dirty = self.dirty or removed
        return removed

    async def scan(self, collection: Collection, **filters: Any) -> list:
        entity_type = ENTITY_TYPES[collection]
        matches = []
        for record in self._records(collection).values():
            entity = entity_type.model_validate(record)
            if all(getattr(entity, field) == value for field, value in filters.items()):
                matches.append(entity)
        return matches

    async def clear(self, collection: Collection) -> None:
        self._records(collection).clear()
        self.dirty = True


class DocumentStore(Store):
    """Single-blob store with atomic replace and an optional size guard."""

    backend_name = "document"

    def __init__(self, path: str | os.PathLike | None = None, *, max_bytes: int = 0):
        self._path = Path(path) if path is not None else None
        self._max_bytes = max_bytes
        self._collections = empty_collections()
        self.recovered_from: Path | None = None

    @property
    def path(self) -> Path | None:
        return self._path

    async def initialize(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if not self._path.exists():
            return
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StorageError("Could not read snapshot", {"path": str(self._path)}) from exc

        result = decode_snapshot(raw)
        if result.ok:
            self._collections = result.value
            logger.info("Document store loaded path=%s", self._path)
        else:
            self._recover(result.error)

    def _recover(self, error: StorageError) -> None:
        stamp = utcnow().strftime("%Y%m%dT%H%M%SZ")
        aside = self._path.with_name(f"{self._path.name}.corrupt-{stamp}")
        try:
            os.replace(self._path, aside)
        except OSError as exc:
            raise StorageError("Could not move corrupt snapshot aside", {"path": str(self._path)}) from exc
        logger.warning(
            "degraded recovery: snapshot unreadable (%s); moved to %s, starting empty",
            error.message,
            aside,
        )
        self._collections = empty_collections()
        self.recovered_from = aside

    def _encode(self, collections: dict) -> bytes:
        doc = {
            "version": SNAPSHOT_VERSION,
            "updated_at": utcnow().isoformat(),
            "collections": collections,
        }
        return json.dumps(doc, separators=(",", ":")).encode("utf-8")

    def _commit(self, collections: dict) -> None:
        payload = self._encode(collections)
        if self._max_bytes and len(payload) > self._max_bytes:
            raise StorageError(
                "Storage quota exceeded",
                {"reason": "quota_exceeded", "size": len(payload), "max_bytes": self._max_bytes},
            )
        if self._path is None:
            return
        tmp = self._path.with_name(f"{self._path.name}.tmp")
        try:
            tmp.write_bytes(payload)
            os.replace(tmp, self._path)
        except OSError as exc:
            raise StorageError("Snapshot write failed", {"path": str(self._path)}) from exc

    @asynccontextmanager
    async def transaction(self):
        working = copy.deepcopy(self._collections)
        tx = DocumentTransaction(working)
        yield tx
        if tx.dirty:
            self._commit(working)
            self._collections = working
