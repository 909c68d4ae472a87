"""Key/value option store."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sharing_image.models import Option

logger = logging.getLogger(__name__)


class OptionStore:
    """Get/set of named JSON values. Last write wins."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, name: str, default: Any = None) -> Any:
        result = await self.db.execute(select(Option).where(Option.name == name))
        option = result.scalar_one_or_none()

        if option is None or option.value is None:
            return default

        return option.value

    async def set(self, name: str, value: Any) -> None:
        result = await self.db.execute(select(Option).where(Option.name == name))
        option = result.scalar_one_or_none()

        if option is None:
            self.db.add(Option(name=name, value=value))
        else:
            option.value = value

        await self.db.commit()
        logger.debug("Option %s updated", name)
