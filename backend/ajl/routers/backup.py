"""Backup router: full snapshot export/import, month CSV, local reset."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import Response

from ajl.config import Settings
from ajl.core.calendar import month_key
from ajl.dependencies import get_ledger, get_settings, required_month
from ajl.schemas.common import Envelope
from ajl.services import accounting, export_service
from ajl.services.ledger import Ledger

router = APIRouter(tags=["backup"])


@router.get("/export/backup.json", response_model=Envelope[dict])
async def export_backup(
    ledger: Ledger = Depends(get_ledger),
    settings: Settings = Depends(get_settings),
):
    async with ledger.transaction() as tx:
        backup = await export_service.export_backup(tx, settings)
    return Envelope(data=backup)


@router.post("/import/backup", response_model=Envelope[dict])
async def import_backup(body: Any = Body(default=None), ledger: Ledger = Depends(get_ledger)):
    """Replace every collection with the backup. All or nothing."""
    async with ledger.transaction() as tx:
        report = await export_service.import_backup(tx, body)
    return Envelope(data=report)


@router.get("/export/month.csv")
async def export_month_csv(
    period: tuple[int, int] = Depends(required_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    await ledger.ensure_month(year, month)
    async with ledger.transaction() as tx:
        instances = await accounting.get_instances(tx, year, month)
    filename = f"au-jour-le-jour-{month_key(year, month)}.csv"
    return Response(
        content=export_service.month_csv(instances),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/reset-local", response_model=Envelope[dict])
async def reset_local(ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        await export_service.reset(tx)
    return Envelope(data={"reset": True})
