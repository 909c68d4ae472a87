"""Canvas backends for the template compositor."""

import io
import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageEnhance, ImageFilter, ImageFont, ImageOps

logger = logging.getLogger(__name__)

# format name -> (Pillow format, mime type)
IMAGE_FORMATS = {
    "jpg": ("JPEG", "image/jpeg"),
    "jpeg": ("JPEG", "image/jpeg"),
    "png": ("PNG", "image/png"),
    "webp": ("WEBP", "image/webp"),
}

DEFAULT_FONT_SIZE = 48
DEFAULT_LINE_HEIGHT = 1.5
DEFAULT_COLOR = "#ffffff"
BLUR_RADIUS = 8

# Top and bottom gradient colors of the generated preview placeholders
PLACEHOLDER_COLORS = (
    ("#1e3c72", "#2a5298"),
    ("#ff512f", "#dd2476"),
    ("#11998e", "#38ef7d"),
    ("#614385", "#516395"),
    ("#f7971e", "#ffd200"),
    ("#232526", "#414345"),
    ("#c94b4b", "#4b134f"),
    ("#00b4db", "#0083b0"),
    ("#56ab2f", "#a8e063"),
    ("#834d9b", "#d04ed6"),
    ("#e65c00", "#f9d423"),
    ("#373b44", "#4286f4"),
)


def image_format(name: str) -> Tuple[str, str]:
    """Get Pillow format and mime type for a configured format name."""
    try:
        return IMAGE_FORMATS[name.lower()]
    except KeyError:
        raise ValueError(f"Unsupported image format: {name}")


def mime_type(name: str) -> str:
    return image_format(name)[1]


class CanvasBackend(Protocol):
    """Primitive drawing operations the compositor dispatches to."""

    def open(self, path: Optional[str] = None) -> None:
        ...

    def fit_and_crop(self, width: int, height: int) -> None:
        ...

    def insert_image(self, path: str, x: Optional[int] = None, y: Optional[int] = None,
                     width: Optional[int] = None, height: Optional[int] = None) -> None:
        ...

    def draw_rectangle(self, x: int, y: int, width: int, height: int, **options) -> None:
        ...

    def draw_text(self, content: str, **options) -> None:
        ...

    def apply_filter(self, **options) -> None:
        ...

    def encode(self, quality: int, format: str) -> bytes:
        ...

    def save(self, path: str, quality: int, format: str) -> str:
        ...


class PillowCanvas:
    """Canvas backend built on Pillow.

    Everything is drawn on an RGBA image in memory. Nothing touches the
    filesystem until ``save``.
    """

    def __init__(self):
        self.image: Optional[Image.Image] = None

    def open(self, path: Optional[str] = None) -> None:
        """Load the background image, or start blank."""
        if path is None:
            self.image = None
            return

        with Image.open(path) as source:
            self.image = ImageOps.exif_transpose(source).convert("RGBA")

    def fit_and_crop(self, width: int, height: int) -> None:
        """Cover the target size preserving aspect ratio, cropping the overflow."""
        if self.image is None:
            self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
            return

        self.image = ImageOps.fit(self.image, (width, height), method=Image.Resampling.LANCZOS)

    def insert_image(
        self,
        path: str,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> None:
        """Insert an image at natural size, or scaled proportionally into the given box."""
        canvas = self._require_canvas()

        with Image.open(path) as source:
            layer = ImageOps.exif_transpose(source).convert("RGBA")

        if width and height:
            layer = ImageOps.contain(layer, (width, height), method=Image.Resampling.LANCZOS)
        elif width:
            layer = layer.resize((width, max(1, round(layer.height * width / layer.width))))
        elif height:
            layer = layer.resize((max(1, round(layer.width * height / layer.height)), height))

        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        overlay.paste(layer, (x or 0, y or 0))

        self.image = Image.alpha_composite(canvas, overlay)

    def draw_rectangle(
        self,
        x: int,
        y: int,
        width: int,
        height: int,
        color: Optional[str] = None,
        opacity: Optional[int] = None,
        outline: bool = False,
        thickness: Optional[int] = None,
    ) -> None:
        """Draw a filled or outlined rectangle. A zero-size box draws nothing."""
        canvas = self._require_canvas()

        if width <= 0 or height <= 0:
            return

        fill = self._rgba(color, opacity)
        box = (x, y, x + width - 1, y + height - 1)

        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        if outline:
            draw.rectangle(box, outline=fill, width=thickness or 1)
        else:
            draw.rectangle(box, fill=fill)

        self.image = Image.alpha_composite(canvas, overlay)

    def draw_text(
        self,
        content: str,
        x: Optional[int] = None,
        y: Optional[int] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        fontsize: Optional[int] = None,
        lineheight: Optional[float] = None,
        color: Optional[str] = None,
        opacity: Optional[int] = None,
        horizontal: Optional[str] = None,
        vertical: Optional[str] = None,
        fontpath: Optional[str] = None,
    ) -> None:
        """Draw word-wrapped text aligned inside a box.

        An unset box extends from (x, y) to the canvas edges; a zero-size
        box draws nothing.
        """
        canvas = self._require_canvas()

        fontsize = fontsize or DEFAULT_FONT_SIZE
        if lineheight is None:
            lineheight = DEFAULT_LINE_HEIGHT

        font = self._load_font(fontpath, fontsize)

        x = x or 0
        y = y or 0
        box_width = width if width is not None else max(canvas.width - x, 1)
        box_height = height if height is not None else max(canvas.height - y, 1)

        if box_width <= 0 or box_height <= 0:
            return

        overlay = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)

        lines = self._wrap_text(draw, content, font, box_width)
        line_height = round(fontsize * lineheight)
        text_height = line_height * len(lines)

        top = y
        if vertical == "center":
            top = y + (box_height - text_height) // 2
        elif vertical == "bottom":
            top = y + box_height - text_height

        fill = self._rgba(color, opacity)

        for i, line in enumerate(lines):
            bbox = draw.textbbox((0, 0), line, font=font)
            line_width = bbox[2] - bbox[0]

            left = x
            if horizontal == "center":
                left = x + (box_width - line_width) // 2
            elif horizontal == "right":
                left = x + box_width - line_width

            draw.text((left, top + i * line_height), line, font=font, fill=fill)

        self.image = Image.alpha_composite(canvas, overlay)

    def apply_filter(
        self,
        grayscale: bool = False,
        blur: bool = False,
        contrast: Optional[int] = None,
        brightness: Optional[int] = None,
        blackout: Optional[int] = None,
    ) -> None:
        """Apply adjustments to the whole canvas, in a fixed order."""
        canvas = self._require_canvas()

        if grayscale:
            canvas = self._keep_alpha(canvas, ImageOps.grayscale(canvas.convert("RGB")).convert("RGB"))

        if blur:
            canvas = canvas.filter(ImageFilter.GaussianBlur(radius=BLUR_RADIUS))

        if contrast:
            enhanced = ImageEnhance.Contrast(canvas.convert("RGB")).enhance(1 + contrast / 100)
            canvas = self._keep_alpha(canvas, enhanced)

        if brightness:
            enhanced = ImageEnhance.Brightness(canvas.convert("RGB")).enhance(1 + brightness / 100)
            canvas = self._keep_alpha(canvas, enhanced)

        if blackout:
            shade = Image.new("RGBA", canvas.size, (0, 0, 0, round(255 * blackout / 100)))
            canvas = Image.alpha_composite(canvas, shade)

        self.image = canvas

    def encode(self, quality: int, format: str) -> bytes:
        """Encode the canvas into image bytes."""
        pil_format, _ = image_format(format)
        image = self._require_canvas()

        if pil_format == "JPEG":
            image = image.convert("RGB")

        buffer = io.BytesIO()
        image.save(buffer, format=pil_format, quality=quality)
        return buffer.getvalue()

    def save(self, path: str, quality: int, format: str) -> str:
        """Encode and write the canvas.

        The file is written next to its destination first and renamed into
        place, so readers never see a partial image.
        """
        data = self.encode(quality, format)

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        partial = path.with_name(path.name + ".part")

        try:
            with open(partial, "wb") as f:
                f.write(data)
            os.replace(partial, path)
        finally:
            if partial.exists():
                partial.unlink()

        logger.debug("Saved %s (%d bytes)", path, len(data))
        return str(path)

    def _require_canvas(self) -> Image.Image:
        if self.image is None:
            raise RuntimeError("Canvas is not initialized, call fit_and_crop first")
        return self.image

    @staticmethod
    def _rgba(color: Optional[str], opacity: Optional[int]) -> Tuple[int, int, int, int]:
        """Hex color plus opacity, where 0 is solid and 100 is fully transparent."""
        red, green, blue = ImageColor.getrgb(color or DEFAULT_COLOR)[:3]
        alpha = round(255 * (100 - (opacity or 0)) / 100)
        return red, green, blue, alpha

    @staticmethod
    def _keep_alpha(source: Image.Image, rgb: Image.Image) -> Image.Image:
        result = rgb.convert("RGBA")
        result.putalpha(source.getchannel("A"))
        return result

    @staticmethod
    def _load_font(fontpath: Optional[str], fontsize: int):
        if fontpath:
            return ImageFont.truetype(str(fontpath), fontsize)
        return ImageFont.load_default(size=fontsize)

    @staticmethod
    def _wrap_text(draw: ImageDraw.ImageDraw, content: str, font, max_width: int) -> List[str]:
        """Greedy word wrap; explicit newlines are kept."""
        lines = []

        for paragraph in content.splitlines() or [""]:
            current_line = []

            for word in paragraph.split():
                test_line = " ".join(current_line + [word])
                bbox = draw.textbbox((0, 0), test_line, font=font)
                if bbox[2] - bbox[0] > max_width and current_line:
                    lines.append(" ".join(current_line))
                    current_line = [word]
                else:
                    current_line.append(word)

            lines.append(" ".join(current_line))

        return lines


def render_placeholder(path, number: int, width: int, height: int) -> str:
    """Write the preview placeholder ``number`` (1-based) as a JPEG gradient.

    The same number always produces the same image.
    """
    top, bottom = PLACEHOLDER_COLORS[(number - 1) % len(PLACEHOLDER_COLORS)]

    mask = Image.linear_gradient("L").resize((width, height))
    gradient = Image.composite(
        Image.new("RGB", (width, height), bottom),
        Image.new("RGB", (width, height), top),
        mask,
    )

    canvas = PillowCanvas()
    canvas.image = gradient.convert("RGBA")
    return canvas.save(path, 90, "jpg")
