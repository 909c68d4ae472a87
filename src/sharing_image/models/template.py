"""Template, layer and fieldset models.

Templates are stored the way the editor form submits them, so every model
here parses leniently: blank strings mean "unset", checkbox values mean
"on", and unknown keys are dropped.
"""

import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from sharing_image.core.config import settings

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")

LAYER_TYPES = ("text", "image", "filter", "rectangle")

Coordinate = Annotated[int, Field(ge=0)]
Percent = Annotated[int, Field(ge=0, le=100)]
Adjustment = Annotated[int, Field(ge=-100, le=100)]


def blank_to_none(value: Any) -> Any:
    """Treat absent and empty-string form values as unset."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def as_flag(value: Any) -> bool:
    """Checkbox semantics: any non-empty value except "0"/"false" is on."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "off")
    return bool(value)


class LayerBase(BaseModel):
    """Common parsing rules for all layer variants."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _blank_fields(cls, data):
        # "type" is the union discriminator and must reach pydantic untouched
        if isinstance(data, dict):
            return {key: value if key == "type" else blank_to_none(value) for key, value in data.items()}
        return data

    @field_validator("color", mode="after", check_fields=False)
    @classmethod
    def _hex_color(cls, value):
        if value is not None and not HEX_COLOR.match(value):
            raise ValueError(f"Invalid hex color: {value}")
        return value


class TextLayer(LayerBase):
    """Text block positioned inside a box."""

    type: Literal["text"] = "text"

    content: Optional[str] = None
    dynamic: bool = False
    title: Optional[str] = None
    sample: Optional[str] = None
    preset: Literal["none", "title", "excerpt"] = "none"

    x: Optional[Coordinate] = None
    y: Optional[Coordinate] = None
    width: Optional[Coordinate] = None
    height: Optional[Coordinate] = None

    fontsize: Optional[Coordinate] = None
    lineheight: Optional[Annotated[float, Field(ge=0)]] = None
    color: Optional[str] = None
    opacity: Optional[Percent] = None
    horizontal: Optional[Literal["left", "center", "right"]] = None
    vertical: Optional[Literal["top", "center", "bottom"]] = None

    fontname: Optional[str] = None
    fontfile: Optional[int] = None

    @field_validator("dynamic", mode="before")
    @classmethod
    def _dynamic_flag(cls, value):
        return as_flag(value)

    @field_validator("preset", mode="before")
    @classmethod
    def _default_preset(cls, value):
        return blank_to_none(value) or "none"


class ImageLayer(LayerBase):
    """Attachment image inserted on top of the canvas."""

    type: Literal["image"] = "image"

    attachment: Optional[int] = None
    x: Optional[Coordinate] = None
    y: Optional[Coordinate] = None
    width: Optional[Coordinate] = None
    height: Optional[Coordinate] = None


class FilterLayer(LayerBase):
    """Adjustments applied to the whole accumulated canvas."""

    type: Literal["filter"] = "filter"

    grayscale: bool = False
    blur: bool = False
    brightness: Optional[Adjustment] = None
    contrast: Optional[Adjustment] = None
    blackout: Optional[Percent] = None

    @field_validator("grayscale", "blur", mode="before")
    @classmethod
    def _filter_flags(cls, value):
        return as_flag(value)


class RectangleLayer(LayerBase):
    """Filled or outlined rectangle."""

    type: Literal["rectangle"] = "rectangle"

    color: Optional[str] = None
    x: Optional[Coordinate] = None
    y: Optional[Coordinate] = None
    width: Optional[Coordinate] = None
    height: Optional[Coordinate] = None
    outline: bool = False
    thickness: Optional[Annotated[int, Field(ge=0, le=50)]] = None
    opacity: Optional[Percent] = None

    @field_validator("outline", mode="before")
    @classmethod
    def _outline_flag(cls, value):
        return as_flag(value)


Layer = Annotated[
    Union[TextLayer, ImageLayer, FilterLayer, RectangleLayer],
    Field(discriminator="type"),
]


def indexed_list(value: Any) -> List[Any]:
    """Turn a form-style {"0": ..., "1": ...} mapping into an ordered list."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [value[key] for key in sorted(value, key=lambda k: int(k))]
    return list(value)


class Template(BaseModel):
    """Stored template: canvas size, background rules and a layer stack.

    Layers are stored top of stack first. A slot holding ``None`` is a
    layer whose type was missing or unknown; it keeps its index so that
    captions keyed by index still line up.
    """

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    width: Annotated[int, Field(gt=0)] = settings.DEFAULT_WIDTH
    height: Annotated[int, Field(gt=0)] = settings.DEFAULT_HEIGHT
    background: Literal["dynamic", "thumbnail", "permanent"] = "dynamic"
    attachment: Optional[int] = None
    layers: List[Optional[Layer]] = Field(default_factory=list)
    preview: Optional[str] = None
    suspend: bool = False

    @field_validator("width", "height", mode="before")
    @classmethod
    def _default_size(cls, value, info):
        if blank_to_none(value) is None:
            return settings.DEFAULT_WIDTH if info.field_name == "width" else settings.DEFAULT_HEIGHT
        return value

    @field_validator("background", mode="before")
    @classmethod
    def _default_background(cls, value):
        return blank_to_none(value) or "dynamic"

    @field_validator("attachment", "title", "preview", mode="before")
    @classmethod
    def _blank_fields(cls, value):
        return blank_to_none(value)

    @field_validator("suspend", mode="before")
    @classmethod
    def _suspend_flag(cls, value):
        return as_flag(value)

    @field_validator("layers", mode="before")
    @classmethod
    def _known_layers(cls, value):
        layers = []
        for layer in indexed_list(value):
            if isinstance(layer, BaseModel):
                layer = layer.model_dump()
            if not isinstance(layer, dict) or layer.get("type") not in LAYER_TYPES:
                layers.append(None)
                continue
            layers.append(layer)
        return layers


class Fieldset(BaseModel):
    """Per-render overrides: a background attachment and caption texts."""

    model_config = ConfigDict(extra="ignore")

    attachment: Optional[int] = None
    captions: Dict[int, str] = Field(default_factory=dict)

    @field_validator("attachment", mode="before")
    @classmethod
    def _blank_attachment(cls, value):
        return blank_to_none(value)

    @field_validator("captions", mode="before")
    @classmethod
    def _indexed_captions(cls, value):
        if value is None:
            return {}
        if isinstance(value, (list, tuple)):
            value = dict(enumerate(value))
        return {key: caption for key, caption in value.items() if caption is not None}


class PostContext(BaseModel):
    """Post data used by text layer presets."""

    title: Optional[str] = None
    excerpt: Optional[str] = None


class Picker(BaseModel):
    """Publish-time compose payload. ``template`` is 1-based."""

    template: Annotated[int, Field(ge=1)]
    fieldset: Fieldset = Field(default_factory=Fieldset)
    context: Optional[PostContext] = None
