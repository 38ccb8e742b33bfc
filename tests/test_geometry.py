"""Tests for the geometry engine."""

import pytest

from webp_derivatives.faces import FaceBox
from webp_derivatives.geometry import (
    CropDecision,
    cap_dimensions,
    cover_crop_box,
    face_centroid,
    fit_scale,
    round_half_up,
)

SOURCES = [(3000, 2000), (2000, 3000), (4000, 1000), (1921, 1081), (5000, 5000), (2500, 1200)]
BOUNDS = [(1920, 1080), (1024, 1024), (300, 300), (150, 400), (800, 600)]


class TestFitScale:
    """Tests for fit_scale."""

    def test_height_bound(self):
        """3000x2000 into 1920x1080 is limited by height."""
        assert fit_scale(3000, 2000, 1920, 1080) == (1620, 1080)

    def test_width_bound(self):
        """4000x1000 into 1920x1080 is limited by width."""
        assert fit_scale(4000, 1000, 1920, 1080) == (1920, 480)

    def test_unconstrained_height(self):
        """Zero max height derives height from the ratio."""
        assert fit_scale(100, 100, 300, 0) == (300, 300)
        assert fit_scale(400, 200, 300, 0) == (300, 150)

    def test_unconstrained_width(self):
        """Zero max width derives width from the ratio."""
        assert fit_scale(1000, 2000, 0, 500) == (250, 500)

    def test_upscales_small_sources(self):
        assert fit_scale(100, 50, 300, 300) == (300, 150)

    def test_rounds_half_up(self):
        """333x100 into 100x100: 100 * 100 / 333 = 30.03 -> 30."""
        assert fit_scale(333, 100, 100, 100) == (100, 30)
        assert fit_scale(200, 101, 100, 100) == (100, 51)

    def test_never_zero(self):
        assert fit_scale(10000, 10, 100, 100) == (100, 1)

    @pytest.mark.parametrize('src', SOURCES)
    @pytest.mark.parametrize('bounds', BOUNDS)
    def test_within_bounds_and_keeps_ratio(self, src, bounds):
        w, h = src
        mw, mh = bounds
        out_w, out_h = fit_scale(w, h, mw, mh)

        assert out_w <= mw
        assert out_h <= mh
        assert out_w == mw or out_h == mh
        tolerance = (w / h) / min(out_w, out_h)
        assert abs(out_w / out_h - w / h) < tolerance


class TestCapDimensions:
    """Tests for primary capping."""

    @pytest.mark.parametrize('src', [(100, 100), (1920, 1080), (1000, 1080), (1920, 10)])
    def test_noop_within_bounds(self, src):
        assert cap_dimensions(*src, 1920, 1080) == src

    def test_caps_oversized(self):
        assert cap_dimensions(3000, 2000, 1920, 1080) == (1620, 1080)

    def test_caps_one_dimension_over(self):
        assert cap_dimensions(1000, 2160, 1920, 1080) == (500, 1080)


class TestCoverCropBox:
    """Tests for cover_crop_box."""

    def test_geometric_centre_default(self):
        crop = cover_crop_box(3000, 2000, 150, 150)
        assert crop == CropDecision(x=500, y=0, width=2000, height=2000)

    def test_centre_on_point(self):
        crop = cover_crop_box(3000, 2000, 150, 150, center_x=1200, center_y=1000)
        assert crop == CropDecision(x=200, y=0, width=2000, height=2000)

    def test_clamps_left(self):
        crop = cover_crop_box(3000, 2000, 150, 150, center_x=100, center_y=1000)
        assert crop.x == 0

    def test_clamps_right(self):
        crop = cover_crop_box(3000, 2000, 150, 150, center_x=2950, center_y=1000)
        assert crop.x == 1000

    def test_wide_target(self):
        """A 3:1 target on a 3:2 source keeps full width."""
        crop = cover_crop_box(1620, 1080, 300, 100)
        assert crop == CropDecision(x=0, y=270, width=1620, height=540)

    def test_same_aspect_is_full_frame(self):
        assert cover_crop_box(1600, 900, 160, 90) == CropDecision(0, 0, 1600, 900)

    def test_box_property(self):
        assert CropDecision(10, 20, 30, 40).box == (10, 20, 40, 60)

    @pytest.mark.parametrize('src', SOURCES)
    @pytest.mark.parametrize('target', [(150, 150), (300, 100), (100, 300), (1024, 768)])
    @pytest.mark.parametrize('center', [None, (-500, -500), (1e6, 1e6), (10, 2000)])
    def test_inside_bounds_with_target_ratio(self, src, target, center):
        w, h = src
        tw, th = target
        cx, cy = center if center else (None, None)
        crop = cover_crop_box(w, h, tw, th, cx, cy)

        assert crop.x >= 0 and crop.y >= 0
        assert crop.x + crop.width <= w
        assert crop.y + crop.height <= h
        assert crop.width == w or crop.height == h
        tolerance = (tw / th) / min(crop.width, crop.height) * 2
        assert abs(crop.width / crop.height - tw / th) <= tolerance


class TestFaceCentroid:
    """Tests for face_centroid."""

    def test_single_face_is_its_centre(self):
        assert face_centroid([FaceBox(10, 20, 30, 40)]) == (25.0, 40.0)

    def test_mean_of_centres(self):
        faces = [FaceBox(0, 0, 100, 100), FaceBox(200, 100, 100, 100)]
        assert face_centroid(faces) == (150.0, 100.0)

    def test_no_faces(self):
        assert face_centroid([]) is None


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
