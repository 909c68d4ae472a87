"""Template editor helpers: layer ordering and form field names.

The editor submits templates as flat bracketed field names, e.g.
``sharing_image_editor[layers][2][fontsize]``. Layer indices inside those
names must stay contiguous and follow display order after every delete or
reorder.
"""

import re
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from sharing_image.core.errors import NotFoundError

EDITOR_FIELD = "sharing_image_editor"

LAYER_FIELD = re.compile(r"^(.+?\[layers\])\[(\d+)\](\[.+?\])$")
FIELD_NAME = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
FIELD_KEY = re.compile(r"\[([^\[\]]*)\]")


def layer_field_name(index: int, key: str, prefix: str = EDITOR_FIELD) -> str:
    return f"{prefix}[layers][{index}][{key}]"


def delete_layer(layers: Sequence[Any], index: int) -> List[Any]:
    """Remove one layer; the rest close the gap."""
    if not 0 <= index < len(layers):
        raise NotFoundError("Layer not found")

    return list(layers[:index]) + list(layers[index + 1:])


def raise_layer(layers: Sequence[Any], index: int) -> List[Any]:
    """Move a layer one step toward the top of the stack (index 0)."""
    if not 0 <= index < len(layers):
        raise NotFoundError("Layer not found")

    layers = list(layers)
    if index > 0:
        layers[index - 1], layers[index] = layers[index], layers[index - 1]

    return layers


def renumber_layer_fields(groups: Sequence[Sequence[str]]) -> List[List[str]]:
    """Rewrite layer field names so group N uses index N.

    ``groups`` holds the field names of each layer in display order.
    Names outside the layers array pass through untouched.
    """
    renumbered = []

    for index, names in enumerate(groups):
        fields = []
        for name in names:
            match = LAYER_FIELD.match(name)
            if match is not None:
                name = f"{match.group(1)}[{index}]{match.group(3)}"
            fields.append(name)
        renumbered.append(fields)

    return renumbered


def parse_form_fields(items: Iterable[Tuple[str, Any]]) -> Dict[str, Any]:
    """Nest bracketed form field names into dictionaries.

    ``a[b][0][c]=1`` becomes ``{"a": {"b": {"0": {"c": 1}}}}``; an empty
    key (``a[]``) appends the next free position.
    """
    data: Dict[str, Any] = {}

    for name, value in items:
        match = FIELD_NAME.match(name)
        if match is None:
            continue

        keys = [match.group(1)] + FIELD_KEY.findall(match.group(2))

        node = data
        for key in keys[:-1]:
            if key == "":
                key = str(len(node))
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child

        last = keys[-1]
        if last == "":
            last = str(len(node))
        node[last] = value

    return data


def expand_template_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept either a nested template or the editor's flat field mapping."""
    if not any("[" in key for key in payload):
        return dict(payload)

    data = parse_form_fields(payload.items())

    if isinstance(data.get(EDITOR_FIELD), dict):
        return data[EDITOR_FIELD]

    return data
