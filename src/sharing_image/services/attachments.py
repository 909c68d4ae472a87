"""Attachment library and resolvers."""

import logging
import mimetypes
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.core.errors import NotFoundError, ValidationError
from sharing_image.models import Attachment
from sharing_image.models.template import Fieldset, ImageLayer, Template, TextLayer

logger = logging.getLogger(__name__)


class AttachmentResolver(Protocol):
    """Maps an attachment id to a filesystem path."""

    def resolve(self, attachment_id: int) -> Optional[str]:
        ...


class MappingResolver:
    """Resolver over a preloaded id -> path mapping."""

    def __init__(self, paths: Optional[Dict[int, str]] = None):
        self.paths = dict(paths or {})

    def resolve(self, attachment_id: int) -> Optional[str]:
        return self.paths.get(int(attachment_id))


def collect_attachment_ids(template: Template, fieldset: Optional[Fieldset] = None) -> Set[int]:
    """All attachment ids a render of this template may need."""
    ids = set()

    if template.attachment is not None:
        ids.add(template.attachment)

    if fieldset is not None and fieldset.attachment is not None:
        ids.add(fieldset.attachment)

    for layer in template.layers:
        if isinstance(layer, ImageLayer) and layer.attachment is not None:
            ids.add(layer.attachment)
        if isinstance(layer, TextLayer) and layer.fontfile is not None:
            ids.add(layer.fontfile)

    return ids


class AttachmentLibrary:
    """Registry of files addressable by numeric id."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(self, path: str, mime_type: Optional[str] = None) -> Attachment:
        """Register an existing server file as an attachment."""
        file_path = Path(path)

        if not file_path.is_file():
            raise ValidationError(f"File not found: {path}")

        attachment = Attachment(
            path=str(file_path.resolve()),
            filename=file_path.name,
            mime_type=mime_type or mimetypes.guess_type(file_path.name)[0],
        )

        self.db.add(attachment)
        await self.db.commit()
        await self.db.refresh(attachment)

        logger.info("Registered attachment %d: %s", attachment.id, attachment.path)
        return attachment

    async def get(self, attachment_id: int) -> Attachment:
        result = await self.db.execute(select(Attachment).where(Attachment.id == attachment_id))
        attachment = result.scalar_one_or_none()

        if not attachment:
            raise NotFoundError("Attachment not found")

        return attachment

    async def delete(self, attachment_id: int) -> None:
        attachment = await self.get(attachment_id)
        await self.db.delete(attachment)
        await self.db.commit()

    async def resolver(self, ids: Iterable[int]) -> MappingResolver:
        """Preload paths for the given ids so rendering never waits on the database."""
        ids = set(ids)
        if not ids:
            return MappingResolver()

        result = await self.db.execute(select(Attachment).where(Attachment.id.in_(ids)))
        return MappingResolver({a.id: a.path for a in result.scalars().all()})
