"""
Pytest fixtures for webp_derivatives tests.
"""

from pathlib import Path

import pytest
from PIL import Image

from webp_derivatives.faces import FaceBox, FaceDetection


class StubLocator:
    """Locator returning a fixed detection and counting calls."""

    def __init__(self, detection):
        self.detection = detection
        self.calls = 0

    def locate(self, image):
        self.calls += 1
        return self.detection


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a solid-colour image into tmp_path."""
    def _make(name, size, mode='RGB', color='red', fmt=None, **save_kwargs):
        path = tmp_path / name
        img = Image.new(mode, size, color=color)
        img.save(path, format=fmt, **save_kwargs)
        return path
    return _make


@pytest.fixture
def gradient_jpeg(tmp_path):
    """A 3000x2000 JPEG, dark on the left and light on the right."""
    path = tmp_path / 'photo.jpg'
    img = Image.linear_gradient('L').rotate(90).resize((3000, 2000)).convert('RGB')
    img.save(path, format='JPEG', quality=90)
    return path


@pytest.fixture
def no_faces():
    return StubLocator(FaceDetection.found([]))


@pytest.fixture
def failing_locator():
    return StubLocator(FaceDetection.failed('RuntimeError: boom'))


@pytest.fixture
def left_face_locator():
    """One face near the left edge of a 1620x1080 primary."""
    return StubLocator(FaceDetection.found([FaceBox(x=40, y=400, width=120, height=120)]))


def files_in(directory: Path) -> set:
    return {p.name for p in directory.iterdir()}
