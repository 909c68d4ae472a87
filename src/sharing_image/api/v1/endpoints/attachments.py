"""Attachment endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.core.database import get_db
from sharing_image.services.attachments import AttachmentLibrary

router = APIRouter()


class RegisterAttachmentRequest(BaseModel):
    path: str
    mime_type: Optional[str] = None


@router.post("")
async def register_attachment(
    request: RegisterAttachmentRequest,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Register a file that already exists on the server."""
    attachment = await AttachmentLibrary(db).register(request.path, request.mime_type)

    return {"success": True, "data": attachment.to_dict()}


@router.get("/{attachment_id}")
async def get_attachment(
    attachment_id: int,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Get an attachment by ID."""
    attachment = await AttachmentLibrary(db).get(attachment_id)

    return {"success": True, "data": attachment.to_dict()}


@router.delete("/{attachment_id}")
async def delete_attachment(
    attachment_id: int,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Forget an attachment. The file itself is left alone."""
    await AttachmentLibrary(db).delete(attachment_id)

    return {"success": True, "data": {"deleted": True}}
