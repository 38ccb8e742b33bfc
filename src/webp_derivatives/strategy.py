"""
Crop strategy selection per output size.

Fit sizes are scaled into their bounding box. Crop sizes are cover-cropped to
exact dimensions, centred on the face centroid when faces were found and on
the image centre otherwise. Face detection runs at most once per image.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from PIL import Image

from .faces import FaceDetection, FaceLocator, NullFaceLocator
from .geometry import CropDecision, cover_crop_box, face_centroid, fit_scale
from .models import SizeSpec

logger = logging.getLogger(__name__)

PlanKind = Literal["fit", "center_crop", "face_crop"]


@dataclass(frozen=True)
class SizePlan:
    """What to do for one size: output dimensions and optional crop region."""

    kind: PlanKind
    width: int
    height: int
    crop: CropDecision | None = None


class CropStrategySelector:
    """Chooses between fit, centre crop and face-weighted crop for one image."""

    def __init__(self, locator: FaceLocator | None = None):
        self._locator = locator or NullFaceLocator()
        self._detection: FaceDetection | None = None

    @property
    def detection(self) -> FaceDetection | None:
        """Detection result for the current image, if it has been run."""
        return self._detection

    def detect(self, image: Image.Image) -> FaceDetection:
        """Run the locator on first call, return the cached result afterwards."""
        if self._detection is None:
            self._detection = self._locator.locate(image)
            if self._detection.status != "available":
                logger.info(
                    "Face detection %s (%s), using centre crop",
                    self._detection.status, self._detection.reason,
                )
            else:
                logger.debug("Face detection found %d face(s)", len(self._detection.faces))
        return self._detection

    def plan(self, spec: SizeSpec, image: Image.Image) -> SizePlan:
        src_w, src_h = image.size

        if not spec.is_crop:
            w, h = fit_scale(src_w, src_h, spec.max_width, spec.max_height)
            return SizePlan(kind="fit", width=w, height=h)

        target_w, target_h = spec.max_width, spec.max_height
        center = face_centroid(self.detect(image).usable_faces)
        if center is None:
            crop = cover_crop_box(src_w, src_h, target_w, target_h)
            return SizePlan(kind="center_crop", width=target_w, height=target_h, crop=crop)

        crop = cover_crop_box(src_w, src_h, target_w, target_h, *center)
        logger.debug("Size %s: face-weighted crop at (%.1f, %.1f) -> %s", spec.name, *center, crop)
        return SizePlan(kind="face_crop", width=target_w, height=target_h, crop=crop)
