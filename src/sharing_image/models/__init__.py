"""Persistence and template models for Sharing Image."""

from sharing_image.models.option import Option
from sharing_image.models.attachment import Attachment
from sharing_image.models.template import (
    Fieldset,
    FilterLayer,
    ImageLayer,
    Picker,
    PostContext,
    RectangleLayer,
    Template,
    TextLayer,
)

__all__ = [
    "Option",
    "Attachment",
    "Template",
    "TextLayer",
    "ImageLayer",
    "FilterLayer",
    "RectangleLayer",
    "Fieldset",
    "Picker",
    "PostContext",
]
