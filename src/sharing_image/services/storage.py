"""Upload storage for generated images."""

import uuid
from pathlib import Path, PurePosixPath
from typing import Optional, Tuple

from sharing_image.core.config import settings


def upload_subdirectory(subdirectory: Optional[str]) -> Optional[str]:
    """Normalize a configured subdirectory, dropping traversal segments."""
    if not subdirectory:
        return None

    parts = [
        part for part in PurePosixPath(subdirectory.replace("\\", "/")).parts
        if part not in ("", ".", "..", "/")
    ]
    return "/".join(parts) or None


def get_upload_file(
    subdirectory: Optional[str] = None,
    image_format: Optional[str] = None,
) -> Tuple[Path, str]:
    """Generate a unique upload file path and its public url.

    Returns:
        path: local system path
        url: public URL path
    """
    extension = (image_format or settings.IMAGE_FORMAT).lower()
    if extension == "jpeg":
        extension = "jpg"

    folder = settings.UPLOADS_PATH
    url = settings.UPLOADS_URL.rstrip("/")

    subdirectory = upload_subdirectory(subdirectory)
    if subdirectory:
        folder = folder / subdirectory
        url = f"{url}/{subdirectory}"

    folder.mkdir(parents=True, exist_ok=True)

    name = f"{uuid.uuid4().hex}.{extension}"

    return folder / name, f"{url}/{name}"
