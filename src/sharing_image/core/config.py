"""Application configuration."""

import os
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App info
    VERSION: str = "1.0.0"
    APP_NAME: str = "Sharing Image"
    DEBUG: bool = False

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 7870
    CORS_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Paths
    LIBRARY_PATH: Path = Path.home() / "SHARING_IMAGE"
    DATABASE_PATH: Path = Path.home() / "SHARING_IMAGE" / "sharing-image.db"
    UPLOADS_PATH: Path = Path.home() / "SHARING_IMAGE" / "uploads"
    UPLOADS_URL: str = "/uploads"
    PLACEHOLDERS_PATH: Path = Path.home() / "SHARING_IMAGE" / "placeholders"
    ASSETS_PATH: Path = Path(__file__).resolve().parent.parent / "assets"

    # Output encoding is process-wide, never per template
    IMAGE_QUALITY: int = 90
    IMAGE_FORMAT: str = "jpg"  # jpg, png, webp

    # Template defaults
    DEFAULT_WIDTH: int = 1200
    DEFAULT_HEIGHT: int = 630
    PLACEHOLDER_COUNT: int = 12

    class Config:
        env_prefix = "SHARING_IMAGE_"
        env_file = ".env"
        case_sensitive = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)

        # Keep database and uploads inside a relocated library
        if "LIBRARY_PATH" in kwargs:
            self.DATABASE_PATH = self.LIBRARY_PATH / "sharing-image.db"
            if "UPLOADS_PATH" not in kwargs:
                self.UPLOADS_PATH = self.LIBRARY_PATH / "uploads"
            if "PLACEHOLDERS_PATH" not in kwargs:
                self.PLACEHOLDERS_PATH = self.LIBRARY_PATH / "placeholders"

        # Create directories
        self.LIBRARY_PATH.mkdir(parents=True, exist_ok=True)
        self.UPLOADS_PATH.mkdir(parents=True, exist_ok=True)


# Override paths from environment
if os.environ.get("SHARING_IMAGE_LIBRARY_PATH"):
    _library_path = Path(os.environ["SHARING_IMAGE_LIBRARY_PATH"])
    settings = Settings(
        LIBRARY_PATH=_library_path,
        DATABASE_PATH=_library_path / "sharing-image.db",
        UPLOADS_PATH=_library_path / "uploads",
    )
else:
    settings = Settings()
