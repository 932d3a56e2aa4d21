"""Templates router: recurring bill definitions.

Endpoints:
- GET /templates: list, name-sorted (case-insensitive)
- POST /templates: create, then materialize the named (or current) month
- PUT /templates/{template_id}: replace fields, reapply to the named month
- POST /templates/{template_id}/archive: stop future materialization
- DELETE /templates/{template_id}: delete with instances from the named month on
- POST /apply-templates: reapply every template to a month
"""

from fastapi import APIRouter, Depends

from ajl.dependencies import get_ledger, optional_month, required_month
from ajl.schemas.common import Envelope
from ajl.schemas.template import Template, TemplateFields
from ajl.services import materializer, template_service
from ajl.services.ledger import Ledger

router = APIRouter(tags=["templates"])


@router.get("/templates", response_model=Envelope[list[Template]])
async def list_templates(ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        templates = await template_service.list_templates(tx)
    return Envelope(data=templates)


@router.post("/templates", response_model=Envelope[Template])
async def create_template(
    body: TemplateFields,
    period: tuple[int, int] = Depends(optional_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    async with ledger.transaction() as tx:
        template = await template_service.create_template(tx, body, year=year, month=month)
    return Envelope(data=template)


@router.put("/templates/{template_id}", response_model=Envelope[Template])
async def update_template(
    template_id: str,
    body: TemplateFields,
    period: tuple[int, int] = Depends(optional_month),
    ledger: Ledger = Depends(get_ledger),
):
    """Replace every field. Only the named month's instance picks up the change."""
    year, month = period
    async with ledger.transaction() as tx:
        template = await template_service.update_template(
            tx, template_id, body, year=year, month=month
        )
    return Envelope(data=template)


@router.post("/templates/{template_id}/archive", response_model=Envelope[Template])
async def archive_template(template_id: str, ledger: Ledger = Depends(get_ledger)):
    async with ledger.transaction() as tx:
        template = await template_service.archive_template(tx, template_id)
    return Envelope(data=template)


@router.delete("/templates/{template_id}", response_model=Envelope[dict])
async def delete_template(
    template_id: str,
    period: tuple[int, int] = Depends(optional_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    async with ledger.transaction() as tx:
        removed = await template_service.delete_template(tx, template_id, year=year, month=month)
    return Envelope(data={"template_id": template_id, "removed_instances": removed})


@router.post("/apply-templates", response_model=Envelope[dict])
async def apply_templates(
    period: tuple[int, int] = Depends(required_month),
    ledger: Ledger = Depends(get_ledger),
):
    year, month = period
    async with ledger.transaction() as tx:
        applied = await materializer.apply_templates(tx, year, month)
    return Envelope(data={"year": year, "month": month, "applied": applied})
