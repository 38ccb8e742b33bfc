"""Tests for CropStrategySelector."""

from PIL import Image

from webp_derivatives.faces import FaceBox, FaceDetection, NullFaceLocator
from webp_derivatives.geometry import cover_crop_box
from webp_derivatives.models import SizeSpec
from webp_derivatives.strategy import CropStrategySelector

from .conftest import StubLocator

THUMB = SizeSpec('thumbnail', 150, 150, crop=True)
MEDIUM = SizeSpec('medium', 300, 300)
WIDE = SizeSpec('banner', 300, 100, crop=True)


def primary():
    return Image.new('RGB', (1620, 1080))


class TestCropStrategySelector:
    """Tests for CropStrategySelector."""

    def test_fit_size(self):
        plan = CropStrategySelector(NullFaceLocator()).plan(MEDIUM, primary())

        assert plan.kind == 'fit'
        assert (plan.width, plan.height) == (300, 200)
        assert plan.crop is None

    def test_fit_size_never_runs_detection(self, no_faces):
        selector = CropStrategySelector(no_faces)
        selector.plan(MEDIUM, primary())

        assert no_faces.calls == 0
        assert selector.detection is None

    def test_zero_faces_is_centre_crop(self, no_faces):
        plan = CropStrategySelector(no_faces).plan(THUMB, primary())

        assert plan.kind == 'center_crop'
        assert (plan.width, plan.height) == (150, 150)
        assert plan.crop == cover_crop_box(1620, 1080, 150, 150)

    def test_failed_detection_matches_no_detection(self, failing_locator):
        failed = CropStrategySelector(failing_locator).plan(THUMB, primary())
        plain = CropStrategySelector(NullFaceLocator()).plan(THUMB, primary())

        assert failed == plain
        assert failed.crop.x == 270

    def test_face_weighted_crop(self, left_face_locator):
        plan = CropStrategySelector(left_face_locator).plan(THUMB, primary())

        assert plan.kind == 'face_crop'
        assert (plan.width, plan.height) == (150, 150)
        assert plan.crop.x == 0
        assert (plan.crop.width, plan.crop.height) == (1080, 1080)

    def test_centroid_of_several_faces(self):
        locator = StubLocator(FaceDetection.found([
            FaceBox(1000, 500, 100, 100),
            FaceBox(1400, 500, 100, 100),
        ]))
        plan = CropStrategySelector(locator).plan(WIDE, primary())

        # centroid (1250, 550), crop 1620x540 spans full width
        assert plan.crop.x == 0
        assert plan.crop.y == 280

    def test_detection_runs_once_per_image(self, left_face_locator):
        selector = CropStrategySelector(left_face_locator)
        img = primary()
        for spec in (THUMB, MEDIUM, WIDE, THUMB):
            selector.plan(spec, img)

        assert left_face_locator.calls == 1
        assert selector.detection.status == 'available'

    def test_crop_without_height_is_fit(self, no_faces):
        spec = SizeSpec('strip', 300, 0, crop=True)
        plan = CropStrategySelector(no_faces).plan(spec, primary())

        assert plan.kind == 'fit'
        assert (plan.width, plan.height) == (300, 200)
        assert no_faces.calls == 0
