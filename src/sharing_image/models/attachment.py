"""Attachment model."""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, Integer, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from sharing_image.core.database import Base


class Attachment(Base):
    """Attachment model - a numeric reference to a file on disk."""

    __tablename__ = "attachments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "path": self.path,
            "filename": self.filename,
            "mimeType": self.mime_type,
            "createdAt": self.created_at.isoformat(),
        }
