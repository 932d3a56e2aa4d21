from pathlib import Path

from ajl.config import Settings
from ajl.store.base import Collection, Store, StoreTransaction
from ajl.store.document import DocumentStore
from ajl.store.sql import SqlStore

__all__ = [
    "Collection",
    "DocumentStore",
    "SqlStore",
    "Store",
    "StoreTransaction",
    "build_store",
    "store_file",
]


def store_file(settings: Settings) -> Path | None:
    """The on-disk file behind the configured backend, if there is one."""
    if settings.store_backend == "document":
        return Path(settings.document_path)
    url = settings.database_url
    if settings.store_backend == "sql" and url.startswith("sqlite") and ":memory:" not in url:
        return Path(url.split("///", 1)[-1])
    return None


def build_store(settings: Settings) -> Store:
    """Pick the configured backend."""
    if settings.store_backend == "document":
        return DocumentStore(settings.document_path, max_bytes=settings.document_max_bytes)
    if settings.store_backend == "sql":
        path = store_file(settings)
        if path is not None:
            # aiosqlite will not create the parent directory
            path.parent.mkdir(parents=True, exist_ok=True)
        return SqlStore(settings.database_url, echo=settings.debug)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")
