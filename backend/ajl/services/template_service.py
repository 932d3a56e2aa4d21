"""Template service: recurring bill definitions.

Creating a template materializes the named month. Replacing one reapplies it
to the named month only, so earlier months keep their snapshots.
"""

from ajl.core.calendar import utcnow
from ajl.core.errors import NotFoundError
from ajl.schemas.template import Template, TemplateFields
from ajl.services import materializer
from ajl.store import Collection, StoreTransaction


async def list_templates(tx: StoreTransaction) -> list[Template]:
    """Every template, sorted by name (case-insensitive)."""
    templates = await tx.scan(Collection.templates)
    return sorted(templates, key=lambda t: t.name.lower())


async def get_template(tx: StoreTransaction, template_id: str) -> Template:
    template = await tx.get(Collection.templates, template_id)
    if template is None:
        raise NotFoundError("Template not found", {"template_id": template_id})
    return template


async def create_template(
    tx: StoreTransaction, fields: TemplateFields, *, year: int, month: int
) -> Template:
    template = Template(**fields.model_dump(include=set(TemplateFields.model_fields)))
    await tx.put(Collection.templates, template)
    await materializer.ensure_month(tx, year, month)
    return template


async def update_template(
    tx: StoreTransaction,
    template_id: str,
    fields: TemplateFields,
    *,
    year: int,
    month: int,
) -> Template:
    """Replace every editable field, then reapply to (year, month)."""
    existing = await get_template(tx, template_id)
    template = existing.model_copy(
        update={**fields.model_dump(include=set(TemplateFields.model_fields)), "updated_at": utcnow()}
    )
    await tx.put(Collection.templates, template)
    await materializer.apply_template_to_month(tx, template, year, month)
    return template


async def archive_template(tx: StoreTransaction, template_id: str) -> Template:
    """Stop future materialization; existing instances are kept."""
    existing = await get_template(tx, template_id)
    template = existing.model_copy(update={"active": False, "updated_at": utcnow()})
    await tx.put(Collection.templates, template)
    return template


async def delete_template(
    tx: StoreTransaction, template_id: str, *, year: int | None, month: int | None
) -> int:
    return await materializer.delete_template_from_month(tx, template_id, year, month)
