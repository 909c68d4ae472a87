"""Template endpoints.

Template ids are list positions, 1-based.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.core.database import get_db
from sharing_image.services.editor import expand_template_payload
from sharing_image.services.templates import TemplateStore

router = APIRouter()


def _index(template_id: int) -> int:
    return template_id - 1


@router.post("")
async def create_template(
    request: Dict[str, Any],
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Create a new template."""
    store = TemplateStore(db)
    index = await store.create_template(expand_template_payload(request))
    template = await store.get_template(index)

    return {"success": True, "data": {"id": index + 1, "template": template}}


@router.get("")
async def list_templates(
    db: AsyncSession = Depends(get_db)
) -> dict:
    """List all templates."""
    templates = await TemplateStore(db).get_templates()

    return {
        "success": True,
        "data": [{"id": i + 1, "template": t} for i, t in enumerate(templates)],
    }


@router.get("/{template_id}")
async def get_template(
    template_id: int,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Get a template by ID."""
    template = await TemplateStore(db).get_template(_index(template_id))

    return {"success": True, "data": {"id": template_id, "template": template}}


@router.put("/{template_id}")
async def update_template(
    template_id: int,
    request: Dict[str, Any],
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Replace a template."""
    template = await TemplateStore(db).save_template(_index(template_id), expand_template_payload(request))

    return {"success": True, "data": {"id": template_id, "template": template}}


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Delete a template; later templates shift down by one."""
    await TemplateStore(db).delete_template(_index(template_id))

    return {"success": True, "data": {"deleted": True}}


@router.delete("/{template_id}/layers/{layer}")
async def delete_template_layer(
    template_id: int,
    layer: int,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Delete a layer by its 0-based position in the stack."""
    template = await TemplateStore(db).delete_layer(_index(template_id), layer)

    return {"success": True, "data": {"id": template_id, "template": template}}


@router.post("/{template_id}/layers/{layer}/raise")
async def raise_template_layer(
    template_id: int,
    layer: int,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Move a layer one step up the stack."""
    template = await TemplateStore(db).raise_layer(_index(template_id), layer)

    return {"success": True, "data": {"id": template_id, "template": template}}
