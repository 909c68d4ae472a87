"""Image generation endpoints."""

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.core.config import settings
from sharing_image.core.database import get_db
from sharing_image.core.errors import RenderError
from sharing_image.models.template import Picker
from sharing_image.services.attachments import AttachmentLibrary, collect_attachment_ids
from sharing_image.services.canvas import mime_type
from sharing_image.services.compositor import Compositor
from sharing_image.services.editor import expand_template_payload
from sharing_image.services.storage import get_upload_file
from sharing_image.services.templates import TemplateStore, parse_template

logger = logging.getLogger(__name__)
router = APIRouter()


class EditorRequest(BaseModel):
    template: Dict[str, Any]
    index: int = 0


@router.post("/preview")
async def preview_template(
    request: EditorRequest,
    db: AsyncSession = Depends(get_db)
) -> Response:
    """Render an editor preview and return the image itself."""
    template = parse_template(expand_template_payload(request.template))
    resolver = await AttachmentLibrary(db).resolver(collect_attachment_ids(template))

    compositor = Compositor(resolver)
    loop = asyncio.get_event_loop()

    try:
        image = await loop.run_in_executor(None, compositor.preview, template, request.index)
    except RenderError as e:
        logger.exception("Preview generation failed: %s", e)
        raise

    return Response(content=image, media_type=mime_type(settings.IMAGE_FORMAT))


@router.post("/save")
async def save_template_image(
    request: EditorRequest,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Render an editor preview into the uploads directory and return its url."""
    template = parse_template(expand_template_payload(request.template))
    resolver = await AttachmentLibrary(db).resolver(collect_attachment_ids(template))
    config = await TemplateStore(db).get_config()

    path, url = get_upload_file(config.get("upload"))

    compositor = Compositor(resolver)
    loop = asyncio.get_event_loop()

    try:
        await loop.run_in_executor(None, compositor.save_preview, template, request.index, path)
    except RenderError as e:
        logger.exception("Template image save failed: %s", e)
        raise

    return {"success": True, "data": url}


@router.post("/compose")
async def compose_image(
    picker: Picker,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Render a stored template with post overrides and return the image url."""
    store = TemplateStore(db)

    template = parse_template(await store.get_template(picker.template - 1))
    resolver = await AttachmentLibrary(db).resolver(collect_attachment_ids(template, picker.fieldset))
    config = await store.get_config()

    path, url = get_upload_file(config.get("upload"))

    compositor = Compositor(resolver)
    loop = asyncio.get_event_loop()

    try:
        await loop.run_in_executor(
            None,
            lambda: compositor.compose(template, picker.fieldset, path, picker.context)
        )
    except RenderError as e:
        logger.exception("Image composition failed: %s", e)
        raise

    return {"success": True, "data": url}
