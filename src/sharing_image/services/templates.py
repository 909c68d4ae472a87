"""Template and configuration storage."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.core.errors import NotFoundError, ValidationError
from sharing_image.models.template import Template
from sharing_image.services.editor import delete_layer, raise_layer
from sharing_image.services.options import OptionStore

logger = logging.getLogger(__name__)

OPTION_TEMPLATES = "sharing_image_templates"
OPTION_CONFIG = "sharing_image_config"

CONFIG_KEYS = ("upload",)


def parse_template(data: Any) -> Template:
    """Validate stored or submitted template data."""
    if isinstance(data, Template):
        return data

    if not isinstance(data, Mapping):
        raise ValidationError("Template must be an object")

    try:
        return Template.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid template: {e.errors()[0]['msg']}") from e


def merge_templates(current: List[Dict[str, Any]], submitted: Mapping[int, Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Replace-on-save: submitted entries replace the same index, new ones append."""
    templates = list(current)

    for index in sorted(submitted):
        if 0 <= index < len(templates):
            templates[index] = submitted[index]
        else:
            templates.append(submitted[index])

    return templates


def sanitize_config(value: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    config = {}

    for key in CONFIG_KEYS:
        if value and value.get(key) not in (None, ""):
            config[key] = str(value[key]).strip()

    return config


class TemplateStore:
    """Ordered template list kept in a single option.

    Indices here are 0-based; the HTTP layer exposes them 1-based.
    """

    def __init__(self, db: AsyncSession):
        self.options = OptionStore(db)

    async def get_templates(self) -> List[Dict[str, Any]]:
        templates = await self.options.get(OPTION_TEMPLATES, [])
        return list(templates) if isinstance(templates, list) else []

    async def get_template(self, index: int) -> Dict[str, Any]:
        templates = await self.get_templates()

        if not 0 <= index < len(templates):
            raise NotFoundError("Wrong template id")

        return templates[index]

    async def create_template(self, data: Any) -> int:
        """Append a template and return its index."""
        templates = await self.get_templates()
        templates.append(self._dump(data))

        await self.options.set(OPTION_TEMPLATES, templates)
        logger.info("Template %d created", len(templates) - 1)

        return len(templates) - 1

    async def save_template(self, index: int, data: Any) -> Dict[str, Any]:
        templates = await self.get_templates()

        if not 0 <= index < len(templates):
            raise NotFoundError("Wrong template id")

        template = self._dump(data)
        await self.options.set(OPTION_TEMPLATES, merge_templates(templates, {index: template}))

        return template

    async def delete_template(self, index: int) -> None:
        templates = await self.get_templates()

        if not 0 <= index < len(templates):
            raise NotFoundError("Wrong template id")

        del templates[index]

        await self.options.set(OPTION_TEMPLATES, templates)
        logger.info("Template %d deleted, %d left", index, len(templates))

    async def delete_layer(self, index: int, layer: int) -> Dict[str, Any]:
        template = await self.get_template(index)
        template = {**template, "layers": delete_layer(template.get("layers") or [], layer)}
        return await self.save_template(index, template)

    async def raise_layer(self, index: int, layer: int) -> Dict[str, Any]:
        template = await self.get_template(index)
        template = {**template, "layers": raise_layer(template.get("layers") or [], layer)}
        return await self.save_template(index, template)

    async def get_config(self) -> Dict[str, Any]:
        return sanitize_config(await self.options.get(OPTION_CONFIG, {}))

    async def update_config(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        config = sanitize_config(value)
        await self.options.set(OPTION_CONFIG, config)
        return config

    @staticmethod
    def _dump(data: Any) -> Dict[str, Any]:
        return parse_template(data).model_dump(mode="json")
