"""Configuration endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.core.config import settings
from sharing_image.core.database import get_db
from sharing_image.services.templates import TemplateStore

router = APIRouter()


class UpdateConfigRequest(BaseModel):
    upload: Optional[str] = None


@router.get("")
async def get_config(
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Get stored configuration and the process-wide encoding settings."""
    config = await TemplateStore(db).get_config()

    return {
        "success": True,
        "data": {
            **config,
            "format": settings.IMAGE_FORMAT,
            "quality": settings.IMAGE_QUALITY,
        },
    }


@router.put("")
async def update_config(
    request: UpdateConfigRequest,
    db: AsyncSession = Depends(get_db)
) -> dict:
    """Update stored configuration."""
    config = await TemplateStore(db).update_config(request.model_dump())

    return {"success": True, "data": config}
