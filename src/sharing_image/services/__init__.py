"""Sharing Image services."""

from sharing_image.services.canvas import CanvasBackend, PillowCanvas
from sharing_image.services.compositor import Compositor, Instruction, RenderMode
from sharing_image.services.attachments import AttachmentLibrary, MappingResolver
from sharing_image.services.templates import TemplateStore

__all__ = [
    "CanvasBackend",
    "PillowCanvas",
    "Compositor",
    "Instruction",
    "RenderMode",
    "AttachmentLibrary",
    "MappingResolver",
    "TemplateStore",
]
