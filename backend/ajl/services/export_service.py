"""Export service: JSON and daily file backups, backup import, month CSV, local reset.

Import replaces every collection in one transaction. Rows that fail
validation or reference something missing from the same backup are skipped
and counted, never partially applied.
"""

import csv
import io
import logging
from datetime import date
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ajl.config import Settings
from ajl.core.calendar import month_key, utcnow
from ajl.core.errors import StorageError, ValidationError
from ajl.schemas.instance import Instance, InstanceEvent, InstanceRead, PaymentEvent
from ajl.schemas.settings import AppSettings, MonthSettings
from ajl.schemas.sinking import SinkingEvent, SinkingFund
from ajl.schemas.template import Template
from ajl.services import settings_service
from ajl.store import Collection, StoreTransaction

logger = logging.getLogger("ajl.export")

# Backup section name -> collection, in dependency order
BACKUP_SECTIONS: tuple[tuple[str, Collection], ...] = (
    ("templates", Collection.templates),
    ("instances", Collection.instances),
    ("payment_events", Collection.payment_events),
    ("instance_events", Collection.instance_events),
    ("month_settings", Collection.month_settings),
    ("sinking_funds", Collection.sinking_funds),
    ("sinking_events", Collection.sinking_events),
)

CSV_COLUMNS = (
    "status",
    "name",
    "category",
    "amount",
    "due_date",
    "paid_date",
    "note",
    "autopay",
    "essential",
)


def version_info(settings: Settings) -> dict:
    return {
        "app": settings.app_name,
        "app_version": settings.app_version,
        "schema_version": settings.schema_version,
    }


def _dump(rows: list[BaseModel]) -> list[dict]:
    rows = sorted(rows, key=lambda r: (str(getattr(r, "created_at", "")), r.id))
    return [r.model_dump(mode="json") for r in rows]


async def export_backup(tx: StoreTransaction, settings: Settings) -> dict:
    """Export the whole ledger as one JSON-serializable dict."""
    backup: dict[str, Any] = {**version_info(settings), "exported_at": utcnow().isoformat()}
    for section, collection in BACKUP_SECTIONS:
        backup[section] = _dump(await tx.scan(collection))
    app_settings = await settings_service.get_app_settings(tx)
    backup["settings"] = app_settings.model_dump(mode="json")
    return backup


def _clean(row: Any) -> dict | None:
    """Drop blank ids/timestamps so the model regenerates them."""
    if not isinstance(row, dict):
        return None
    cleaned = dict(row)
    for key in ("id", "created_at", "updated_at"):
        if cleaned.get(key) in (None, ""):
            cleaned.pop(key, None)
    return cleaned


def _section(payload: dict, name: str) -> list:
    rows = payload.get(name)
    return rows if isinstance(rows, list) else []


class _Importer:
    def __init__(self) -> None:
        self.imported: dict[str, int] = {name: 0 for name, _ in BACKUP_SECTIONS}
        self.skipped: dict[str, int] = {name: 0 for name, _ in BACKUP_SECTIONS}
        self.skipped["settings"] = 0

    def parse(self, section: str, model: type[BaseModel], rows: list) -> list:
        parsed = []
        seen: set[str] = set()
        for raw in rows:
            row = _clean(raw)
            if row is None:
                self.skipped[section] += 1
                continue
            if section == "month_settings" and "year" in row and "month" in row:
                try:
                    row["id"] = month_key(int(row["year"]), int(row["month"]))
                except (TypeError, ValueError):
                    self.skipped[section] += 1
                    continue
            try:
                entity = model.model_validate(row)
            except PydanticValidationError:
                self.skipped[section] += 1
                continue
            if entity.id in seen:
                self.skipped[section] += 1
                continue
            seen.add(entity.id)
            parsed.append(entity)
        return parsed

    def parse_settings(self, raw: Any) -> AppSettings:
        """App settings from the backup, or defaults when absent or malformed."""
        if not isinstance(raw, dict):
            return AppSettings()
        try:
            return AppSettings.model_validate(raw)
        except PydanticValidationError:
            self.skipped["settings"] += 1
            return AppSettings()

    def keep_if(self, section: str, rows: list, predicate) -> list:
        kept = [r for r in rows if predicate(r)]
        self.skipped[section] += len(rows) - len(kept)
        return kept


async def import_backup(tx: StoreTransaction, payload: Any) -> dict:
    """Replace every collection with the contents of ``payload``.

    Missing sections default to empty, missing ids and timestamps are
    regenerated, instances duplicating (template_id, year, month) are
    dropped, and children whose parent is absent from the backup are skipped.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Backup must be a JSON object")

    importer = _Importer()
    templates = importer.parse("templates", Template, _section(payload, "templates"))
    instances = importer.parse("instances", Instance, _section(payload, "instances"))

    month_keys: set[tuple[str, int, int]] = set()

    def unique_month(instance: Instance) -> bool:
        key = (instance.template_id, instance.year, instance.month)
        if key in month_keys:
            return False
        month_keys.add(key)
        return True

    instances = importer.keep_if("instances", instances, unique_month)
    instance_ids = {i.id for i in instances}

    payments = importer.keep_if(
        "payment_events",
        importer.parse("payment_events", PaymentEvent, _section(payload, "payment_events")),
        lambda p: p.instance_id in instance_ids,
    )
    instance_events = importer.keep_if(
        "instance_events",
        importer.parse("instance_events", InstanceEvent, _section(payload, "instance_events")),
        lambda e: e.instance_id in instance_ids,
    )
    month_settings = importer.parse(
        "month_settings", MonthSettings, _section(payload, "month_settings")
    )
    funds = importer.parse("sinking_funds", SinkingFund, _section(payload, "sinking_funds"))
    fund_ids = {f.id for f in funds}
    fund_events = importer.keep_if(
        "sinking_events",
        importer.parse("sinking_events", SinkingEvent, _section(payload, "sinking_events")),
        lambda e: e.fund_id in fund_ids,
    )
    app_settings = importer.parse_settings(payload.get("settings"))

    await reset(tx)
    rows_by_section = {
        "templates": templates,
        "instances": instances,
        "payment_events": payments,
        "instance_events": instance_events,
        "month_settings": month_settings,
        "sinking_funds": funds,
        "sinking_events": fund_events,
    }
    for section, collection in BACKUP_SECTIONS:
        for entity in rows_by_section[section]:
            await tx.put(collection, entity)
            importer.imported[section] += 1
    await settings_service.save_app_settings(tx, app_settings)

    logger.info(
        "Backup imported: %s (skipped %s)",
        importer.imported,
        {k: v for k, v in importer.skipped.items() if v},
    )
    return {"imported": importer.imported, "skipped": importer.skipped}


def ensure_daily_backup(source: Path | None, backup_dir: Path, today: date) -> Path | None:
    """Copy the store file into ``backup_dir`` once per calendar day.

    Returns the backup path, or None when there is no file to copy yet.
    """
    if source is None or not source.exists():
        return None
    target = backup_dir / f"au_jour_le_jour_{today.isoformat()}{source.suffix}"
    if target.exists():
        return target
    backup_dir.mkdir(parents=True, exist_ok=True)
    try:
        target.write_bytes(source.read_bytes())
    except OSError as exc:
        raise StorageError("Daily backup failed", {"path": str(target)}) from exc
    logger.info("Daily backup written path=%s", target)
    return target


async def reset(tx: StoreTransaction) -> None:
    """Wipe every collection, audit log and action log included."""
    for collection in Collection:
        await tx.clear(collection)


def _flag(value: bool) -> str:
    return "1" if value else "0"


def month_csv(instances: list[InstanceRead]) -> str:
    """Render instances as the fixed 9-column CSV.

    Fields containing a comma, quote or newline are quoted, with embedded
    quotes doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for item in instances:
        writer.writerow(
            [
                item.status_derived.value,
                item.name_snapshot,
                item.category_snapshot or "",
                str(item.amount),
                item.due_date.isoformat(),
                item.paid_date.isoformat() if item.paid_date else "",
                item.note or "",
                _flag(item.autopay_snapshot),
                _flag(item.essential_snapshot),
            ]
        )
    return buffer.getvalue()
