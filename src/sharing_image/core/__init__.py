"""Core components for Sharing Image."""

from sharing_image.core.config import settings
from sharing_image.core.database import get_db
from sharing_image.core.errors import NotFoundError, RenderError, SharingImageError, ValidationError

__all__ = [
    "settings",
    "get_db",
    "SharingImageError",
    "ValidationError",
    "NotFoundError",
    "RenderError",
]
