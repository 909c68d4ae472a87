"""Template compositor.

Turns a stored template plus per-render overrides into an ordered list of
canvas instructions, then runs them against a fresh canvas backend.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from sharing_image.core.config import settings
from sharing_image.core.errors import RenderError, SharingImageError, ValidationError
from sharing_image.models.template import (
    Fieldset,
    FilterLayer,
    ImageLayer,
    PostContext,
    RectangleLayer,
    Template,
    TextLayer,
)
from sharing_image.services.attachments import AttachmentResolver
from sharing_image.services.canvas import PillowCanvas, render_placeholder
from sharing_image.services.storage import get_upload_file
from sharing_image.services.templates import parse_template

logger = logging.getLogger(__name__)

TEXT_PARAMS = ("x", "y", "width", "height", "fontsize", "color", "lineheight", "opacity", "horizontal", "vertical")
IMAGE_PARAMS = ("x", "y", "width", "height")
RECTANGLE_PARAMS = ("color", "opacity")


class RenderMode(str, Enum):
    """Strict publish-time rendering or lenient editor preview."""
    COMPOSE = "compose"
    PREVIEW = "preview"


@dataclass
class Instruction:
    """One canvas call: ``canvas.<op>(*args, **params)``."""

    op: str
    args: Tuple[Any, ...] = ()
    params: Dict[str, Any] = field(default_factory=dict)

    def apply(self, canvas) -> Any:
        return getattr(canvas, self.op)(*self.args, **self.params)


def pick(layer, keys) -> Dict[str, Any]:
    """Keep only allowed keys that are set on the layer."""
    params = {}
    for key in keys:
        value = getattr(layer, key, None)
        if value is not None:
            params[key] = value
    return params


# Dynamic text sources, tried in order; the first non-empty value wins.

def caption_source(index: int, layer: TextLayer, fieldset: Fieldset, context: Optional[PostContext]) -> Optional[str]:
    return fieldset.captions.get(index)


def preset_source(index: int, layer: TextLayer, fieldset: Fieldset, context: Optional[PostContext]) -> Optional[str]:
    if context is None or layer.preset == "none":
        return None
    return getattr(context, layer.preset)


def sample_source(index: int, layer: TextLayer, fieldset: Fieldset, context: Optional[PostContext]) -> Optional[str]:
    return layer.sample


TextSource = Callable[[int, TextLayer, Fieldset, Optional[PostContext]], Optional[str]]

TEXT_SOURCES: Dict[RenderMode, Tuple[TextSource, ...]] = {
    RenderMode.COMPOSE: (caption_source, preset_source),
    RenderMode.PREVIEW: (sample_source,),
}


class Compositor:
    """Resolve-and-paint pipeline over a canvas backend.

    A compositor never mutates the template it is given, and each render
    gets its own canvas from ``canvas_factory``.
    """

    def __init__(
        self,
        resolver: AttachmentResolver,
        canvas_factory: Callable[[], Any] = PillowCanvas,
        quality: Optional[int] = None,
        image_format: Optional[str] = None,
        assets_path: Optional[Path] = None,
        placeholders_path: Optional[Path] = None,
    ):
        self.resolver = resolver
        self.canvas_factory = canvas_factory
        self.quality = quality if quality is not None else settings.IMAGE_QUALITY
        self.image_format = image_format or settings.IMAGE_FORMAT
        self.assets_path = Path(assets_path or settings.ASSETS_PATH)
        self.placeholders_path = Path(placeholders_path or settings.PLACEHOLDERS_PATH)

        # Background sources in priority order
        self.background_sources = (
            self._fieldset_background,
            self._permanent_background,
            self._placeholder_background,
        )

    def compose(
        self,
        template: Any,
        fieldset: Any = None,
        output_path: Optional[Path] = None,
        context: Optional[PostContext] = None,
    ) -> Path:
        """Render a template with post overrides and save it.

        Raises:
            ValidationError: template is malformed or its background is missing
            RenderError: the canvas backend failed
        """
        instructions = self.plan(template, fieldset, RenderMode.COMPOSE, context=context)

        if output_path is None:
            output_path, _ = get_upload_file(image_format=self.image_format)

        instructions.append(Instruction("save", (str(output_path), self.quality, self.image_format)))
        self._paint(instructions)

        logger.info("Composed %s", output_path)
        return Path(output_path)

    def preview(self, template: Any, seed: Optional[int] = None) -> bytes:
        """Render an editor preview in memory, with placeholder background and sample texts.

        Without a seed there is no placeholder and an unresolved background
        stays blank.
        """
        instructions = self.plan(template, mode=RenderMode.PREVIEW, seed=seed)
        instructions.append(Instruction("encode", (self.quality, self.image_format)))

        return self._paint(instructions)

    def save_preview(self, template: Any, seed: Optional[int] = None, output_path: Optional[Path] = None) -> Path:
        """Same as preview, but written to an upload file."""
        instructions = self.plan(template, mode=RenderMode.PREVIEW, seed=seed)

        if output_path is None:
            output_path, _ = get_upload_file(image_format=self.image_format)

        instructions.append(Instruction("save", (str(output_path), self.quality, self.image_format)))
        self._paint(instructions)

        return Path(output_path)

    def plan(
        self,
        template: Any,
        fieldset: Any = None,
        mode: RenderMode = RenderMode.COMPOSE,
        seed: Optional[int] = None,
        context: Optional[PostContext] = None,
    ) -> List[Instruction]:
        """Build the ordered canvas instructions, without encoding."""
        template = parse_template(template)
        fieldset = self._parse_fieldset(fieldset)

        background = self.resolve_background(template, fieldset, mode, seed)

        instructions = [
            Instruction("open", (background,)),
            Instruction("fit_and_crop", (template.width, template.height)),
        ]

        # Layers are stored top first, so paint from the bottom up
        for index in reversed(range(len(template.layers))):
            layer = template.layers[index]

            if layer is None:
                logger.debug("Skipping layer %d with unknown type", index)
                continue

            instruction = self.build_layer(index, layer, fieldset, mode, context)

            if instruction is None:
                logger.debug("Skipping %s layer %d", layer.type, index)
                continue

            instructions.append(instruction)

        return instructions

    def resolve_background(
        self,
        template: Template,
        fieldset: Fieldset,
        mode: RenderMode,
        seed: Optional[int] = None,
    ) -> Optional[str]:
        for source in self.background_sources:
            path = source(template, fieldset, mode, seed)
            if path:
                return path
        return None

    def resolve_content(
        self,
        index: int,
        layer: TextLayer,
        fieldset: Fieldset,
        mode: RenderMode,
        context: Optional[PostContext] = None,
    ) -> Optional[str]:
        if not layer.dynamic:
            return layer.content

        for source in TEXT_SOURCES[mode]:
            content = source(index, layer, fieldset, context)
            if content:
                return content

        return None

    def resolve_font(self, layer: TextLayer) -> Optional[str]:
        """Font file attachment wins over a named font from the assets catalog."""
        if layer.fontfile is not None:
            path = self._existing(layer.fontfile)
            if path is None:
                raise RenderError(f"Font attachment {layer.fontfile} not found")
            return path

        if layer.fontname:
            path = self.assets_path / "fonts" / f"{Path(layer.fontname).name}.ttf"
            if path.is_file():
                return str(path)
            logger.warning("Font %s not found in %s, using default font", layer.fontname, path.parent)

        return None

    def build_layer(
        self,
        index: int,
        layer: Any,
        fieldset: Fieldset,
        mode: RenderMode,
        context: Optional[PostContext] = None,
    ) -> Optional[Instruction]:
        if isinstance(layer, FilterLayer):
            return self._filter_instruction(layer)
        if isinstance(layer, RectangleLayer):
            return self._rectangle_instruction(layer)
        if isinstance(layer, TextLayer):
            return self._text_instruction(index, layer, fieldset, mode, context)
        if isinstance(layer, ImageLayer):
            return self._image_instruction(layer)

        raise TypeError(f"Unsupported layer: {type(layer).__name__}")

    def _filter_instruction(self, layer: FilterLayer) -> Optional[Instruction]:
        params: Dict[str, Any] = {}

        if layer.grayscale:
            params["grayscale"] = True
        if layer.blur:
            params["blur"] = True

        params.update(pick(layer, ("contrast", "brightness", "blackout")))

        if not params:
            return None

        return Instruction("apply_filter", params=params)

    def _rectangle_instruction(self, layer: RectangleLayer) -> Optional[Instruction]:
        # Both x and y should be set
        if layer.x is None or layer.y is None:
            return None

        params = pick(layer, RECTANGLE_PARAMS)
        params["outline"] = layer.outline

        if layer.outline and layer.thickness is not None:
            params["thickness"] = layer.thickness

        width = layer.width if layer.width is not None else 0
        height = layer.height if layer.height is not None else 0

        return Instruction("draw_rectangle", (layer.x, layer.y, width, height), params)

    def _text_instruction(
        self,
        index: int,
        layer: TextLayer,
        fieldset: Fieldset,
        mode: RenderMode,
        context: Optional[PostContext],
    ) -> Optional[Instruction]:
        content = self.resolve_content(index, layer, fieldset, mode, context)

        if not content:
            return None

        params = pick(layer, TEXT_PARAMS)
        params["fontpath"] = self.resolve_font(layer)

        return Instruction("draw_text", (content,), params)

    def _image_instruction(self, layer: ImageLayer) -> Optional[Instruction]:
        # Attachment id is required
        if layer.attachment is None:
            return None

        path = self.resolver.resolve(layer.attachment)
        if not path:
            raise RenderError(f"Image attachment {layer.attachment} not found")

        # Zero and unset both mean natural size for images
        params = {key: value for key, value in pick(layer, IMAGE_PARAMS).items()
                  if value or key in ("x", "y")}

        return Instruction("insert_image", (path,), params)

    def _fieldset_background(self, template, fieldset, mode, seed) -> Optional[str]:
        if fieldset.attachment is None:
            return None

        path = self._existing(fieldset.attachment)
        if path is None and mode is RenderMode.COMPOSE:
            raise ValidationError(f"Background attachment {fieldset.attachment} not found")

        return path

    def _permanent_background(self, template, fieldset, mode, seed) -> Optional[str]:
        if template.background != "permanent":
            return None

        path = self._existing(template.attachment) if template.attachment is not None else None
        if path is None and mode is RenderMode.COMPOSE:
            raise ValidationError("Permanent background requires an existing attachment")

        return path

    def _placeholder_background(self, template, fieldset, mode, seed) -> Optional[str]:
        if mode is not RenderMode.PREVIEW or seed is None:
            return None

        number = (seed % settings.PLACEHOLDER_COUNT) + 1

        path = self.assets_path / "images" / f"{number}.jpg"
        if path.is_file():
            return str(path)

        # No shipped image for this slot, use a generated one
        generated = self.placeholders_path / f"{number}.jpg"
        if not generated.is_file():
            try:
                render_placeholder(generated, number, settings.DEFAULT_WIDTH, settings.DEFAULT_HEIGHT)
            except OSError as e:
                logger.warning("Could not generate placeholder %d: %s", number, e)

        return str(generated) if generated.is_file() else None

    def _existing(self, attachment_id: int) -> Optional[str]:
        path = self.resolver.resolve(attachment_id)
        if path and Path(path).is_file():
            return path
        return None

    def _paint(self, instructions: List[Instruction]) -> Any:
        """Run instructions on a fresh canvas; any backend failure aborts the render."""
        op = "create"
        result = None

        try:
            canvas = self.canvas_factory()
            for instruction in instructions:
                op = instruction.op
                result = instruction.apply(canvas)
        except SharingImageError:
            raise
        except Exception as e:
            logger.error("Canvas %s failed: %s", op, e)
            raise RenderError(str(e)) from e

        return result

    @staticmethod
    def _parse_fieldset(fieldset: Any) -> Fieldset:
        if isinstance(fieldset, Fieldset):
            return fieldset

        try:
            return Fieldset.model_validate(fieldset or {})
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid fieldset: {e.errors()[0]['msg']}") from e
