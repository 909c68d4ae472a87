"""Tests for template editor helpers."""

import pytest

from sharing_image.core.errors import NotFoundError
from sharing_image.services.editor import (
    delete_layer,
    expand_template_payload,
    layer_field_name,
    parse_form_fields,
    raise_layer,
    renumber_layer_fields,
)


class TestLayerOrdering:
    """Tests for delete and raise."""

    def setup_method(self):
        self.layers = [{"type": "text"}, {"type": "image"}, {"type": "filter"}]

    def test_delete_middle_layer(self):
        layers = delete_layer(self.layers, 1)

        assert layers == [{"type": "text"}, {"type": "filter"}]
        assert len(self.layers) == 3

    def test_delete_out_of_range(self):
        with pytest.raises(NotFoundError):
            delete_layer(self.layers, 3)

        with pytest.raises(NotFoundError):
            delete_layer(self.layers, -1)

    def test_raise_swaps_with_previous(self):
        layers = raise_layer(self.layers, 2)

        assert [layer["type"] for layer in layers] == ["text", "filter", "image"]

    def test_raise_top_layer_is_noop(self):
        assert raise_layer(self.layers, 0) == self.layers

    def test_raise_out_of_range(self):
        with pytest.raises(NotFoundError):
            raise_layer([], 0)


class TestFieldNames:
    """Tests for bracketed layer field names."""

    def test_layer_field_name(self):
        assert layer_field_name(2, "fontsize") == "sharing_image_editor[layers][2][fontsize]"

    def test_renumber_after_delete(self):
        # Layer 1 of 3 was removed from the form
        groups = [
            [layer_field_name(0, "type"), layer_field_name(0, "content")],
            [layer_field_name(2, "type"), layer_field_name(2, "blur")],
        ]

        renumbered = renumber_layer_fields(groups)

        assert renumbered == [
            [layer_field_name(0, "type"), layer_field_name(0, "content")],
            [layer_field_name(1, "type"), layer_field_name(1, "blur")],
        ]

    def test_renumber_after_raise(self):
        groups = [[layer_field_name(1, "type")], [layer_field_name(0, "type")]]

        assert renumber_layer_fields(groups) == [[layer_field_name(0, "type")], [layer_field_name(1, "type")]]

    def test_renumber_keeps_other_fields(self):
        groups = [["sharing_image_editor[title]", layer_field_name(4, "x")]]

        assert renumber_layer_fields(groups) == [["sharing_image_editor[title]", layer_field_name(0, "x")]]


class TestFormParsing:
    """Tests for flat form payloads."""

    def test_parse_nested_fields(self):
        data = parse_form_fields([
            ("sharing_image_editor[title]", "Card"),
            ("sharing_image_editor[layers][0][type]", "text"),
            ("sharing_image_editor[layers][0][content]", "Hello"),
            ("sharing_image_editor[layers][1][type]", "filter"),
            ("plain", "value"),
        ])

        assert data == {
            "sharing_image_editor": {
                "title": "Card",
                "layers": {
                    "0": {"type": "text", "content": "Hello"},
                    "1": {"type": "filter"},
                },
            },
            "plain": "value",
        }

    def test_empty_brackets_append(self):
        data = parse_form_fields([("tags[]", "a"), ("tags[]", "b")])

        assert data == {"tags": {"0": "a", "1": "b"}}

    def test_malformed_names_skipped(self):
        assert parse_form_fields([("a[b", "x"), ("[c]", "y")]) == {}

    def test_expand_editor_payload(self):
        payload = {
            "sharing_image_editor[width]": "800",
            "sharing_image_editor[layers][0][type]": "rectangle",
        }

        assert expand_template_payload(payload) == {"width": "800", "layers": {"0": {"type": "rectangle"}}}

    def test_expand_nested_payload_untouched(self):
        payload = {"width": 800, "layers": [{"type": "filter"}]}

        assert expand_template_payload(payload) == payload
