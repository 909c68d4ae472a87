"""Pytest configuration and fixtures."""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Keep the database and uploads out of the home directory
os.environ.setdefault("SHARING_IMAGE_LIBRARY_PATH", tempfile.mkdtemp(prefix="sharing-image-tests-"))

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from PIL import Image  # noqa: E402

from sharing_image.services.attachments import MappingResolver  # noqa: E402


class RecordingCanvas:
    """Canvas backend that records every call instead of drawing."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def _record(self, op, *args, **params):
        if op == self.fail_on:
            raise OSError(f"{op} exploded")
        self.calls.append((op, args, params))

    def open(self, path=None):
        self._record("open", path)

    def fit_and_crop(self, width, height):
        self._record("fit_and_crop", width, height)

    def insert_image(self, path, **params):
        self._record("insert_image", path, **params)

    def draw_rectangle(self, x, y, width, height, **params):
        self._record("draw_rectangle", x, y, width, height, **params)

    def draw_text(self, content, **params):
        self._record("draw_text", content, **params)

    def apply_filter(self, **params):
        self._record("apply_filter", **params)

    def encode(self, quality, format):
        self._record("encode", quality, format)
        return b"encoded"

    def save(self, path, quality, format):
        self._record("save", path, quality, format)
        Path(path).write_bytes(b"saved")
        return path

    @property
    def ops(self):
        return [call[0] for call in self.calls]


@pytest.fixture
def recording_canvas():
    return RecordingCanvas()


@pytest.fixture
def image_files(tmp_path):
    """Small solid-color images on disk, keyed by attachment id."""
    files = {}

    specs = {
        1: ((40, 20), (255, 0, 0)),
        2: ((20, 20), (0, 0, 255)),
        3: ((10, 30), (0, 255, 0)),
    }

    for attachment_id, (size, color) in specs.items():
        path = tmp_path / f"attachment-{attachment_id}.png"
        Image.new("RGB", size, color).save(path)
        files[attachment_id] = str(path)

    return files


@pytest.fixture
def resolver(image_files):
    return MappingResolver(image_files)


@pytest.fixture
def sample_template():
    """Stored template with one layer of every type, top of stack first."""
    return {
        "title": "Post card",
        "width": "1200",
        "height": "630",
        "background": "dynamic",
        "layers": [
            {
                "type": "text",
                "dynamic": "dynamic",
                "title": "Headline",
                "sample": "Sample headline",
                "preset": "title",
                "x": "40",
                "y": "40",
                "width": "1120",
                "height": "",
                "fontsize": "48",
                "lineheight": "1.5",
                "color": "#ffffff",
                "horizontal": "left",
                "vertical": "top",
            },
            {
                "type": "image",
                "attachment": "2",
                "x": "1000",
                "y": "500",
                "width": "",
                "height": "",
            },
            {
                "type": "rectangle",
                "color": "#000000",
                "x": "0",
                "y": "0",
                "width": "1200",
                "height": "630",
                "opacity": "50",
            },
            {
                "type": "filter",
                "grayscale": "grayscale",
                "contrast": "10",
                "brightness": "",
                "blackout": "0",
            },
        ],
    }


@pytest.fixture
def canvas_class():
    """The recording canvas type, for tests that need several or a failing one."""
    return RecordingCanvas
