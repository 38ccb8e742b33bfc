"""
Face location for crop biasing.

Detection is a best-effort capability. ``locate`` always returns a
FaceDetection value: faces found (possibly none), detection unavailable in
this runtime, or detection attempted and failed. Callers never need to catch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Protocol

import cv2
import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

DetectionStatus = Literal["available", "unavailable", "failed"]

DEFAULT_CASCADE = "haarcascade_frontalface_alt.xml"
ANALYSIS_MAX_DIMENSION = 1024


@dataclass(frozen=True)
class FaceBox:
    """Face bounding box in source-image pixels."""

    x: int
    y: int
    width: int
    height: int


@dataclass(frozen=True)
class FaceDetection:
    """Outcome of one detection attempt."""

    status: DetectionStatus
    faces: tuple[FaceBox, ...] = ()
    reason: str | None = None

    @classmethod
    def found(cls, faces: list[FaceBox] | tuple[FaceBox, ...]) -> FaceDetection:
        return cls(status="available", faces=tuple(faces))

    @classmethod
    def unavailable(cls, reason: str) -> FaceDetection:
        return cls(status="unavailable", reason=reason)

    @classmethod
    def failed(cls, reason: str) -> FaceDetection:
        return cls(status="failed", reason=reason)

    @property
    def usable_faces(self) -> tuple[FaceBox, ...]:
        """Faces to bias toward; empty for unavailable and failed."""
        return self.faces if self.status == "available" else ()


class FaceLocator(Protocol):
    """Anything that can locate faces in a decoded image."""

    def locate(self, image: Image.Image) -> FaceDetection:
        ...


class NullFaceLocator:
    """Locator for runtimes without face detection. Always unavailable."""

    def __init__(self, reason: str = "face detection disabled"):
        self.reason = reason

    def locate(self, image: Image.Image) -> FaceDetection:
        return FaceDetection.unavailable(self.reason)


def _default_cascade_path() -> Path | None:
    data = getattr(cv2, "data", None)
    base = getattr(data, "haarcascades", "") if data is not None else ""
    if not base:
        return None
    return Path(base) / DEFAULT_CASCADE


def _to_gray(image: Image.Image) -> np.ndarray:
    """Grayscale uint8 array, the same conversion path as the image analysis."""
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = np.array(image.convert("RGBA"), dtype=np.uint8)
        bgr = cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGR)
    else:
        rgb = np.array(image.convert("RGB"), dtype=np.uint8)
        bgr = cv2.cvtColor(rgb, cv2.COLOR_RGB2BGR)
    return cv2.cvtColor(np.ascontiguousarray(bgr), cv2.COLOR_BGR2GRAY)


class HaarCascadeLocator:
    """
    Face locator backed by an OpenCV Haar cascade.

    The cascade is loaded lazily on first use. A missing or empty cascade file
    makes the locator report "unavailable" instead of failing.
    """

    def __init__(
        self,
        cascade_path: Path | str | None = None,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_size: tuple[int, int] = (30, 30),
        analysis_max: int = ANALYSIS_MAX_DIMENSION,
    ):
        self.cascade_path = Path(cascade_path) if cascade_path else _default_cascade_path()
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = min_size
        self.analysis_max = analysis_max
        self._cascade: cv2.CascadeClassifier | None = None
        self._load_error: str | None = None

    def _load(self) -> cv2.CascadeClassifier | None:
        if self._cascade is not None or self._load_error is not None:
            return self._cascade

        factory = getattr(cv2, "CascadeClassifier", None)
        if self.cascade_path is None:
            self._load_error = "OpenCV build ships no Haar cascades"
        elif not self.cascade_path.exists():
            self._load_error = f"cascade not found: {self.cascade_path}"
        elif factory is None:
            self._load_error = "OpenCV build has no CascadeClassifier"
        else:
            try:
                cascade = factory(str(self.cascade_path))
            except (cv2.error, AttributeError) as e:
                self._load_error = f"cascade could not be loaded: {self.cascade_path}: {e}"
            else:
                if cascade.empty():
                    self._load_error = f"cascade could not be loaded: {self.cascade_path}"
                else:
                    self._cascade = cascade

        if self._load_error:
            logger.info("Face detection unavailable: %s", self._load_error)
        return self._cascade

    @property
    def available(self) -> bool:
        return self._load() is not None

    def locate(self, image: Image.Image) -> FaceDetection:
        cascade = self._load()
        if cascade is None:
            return FaceDetection.unavailable(self._load_error or "cascade unavailable")

        try:
            gray = _to_gray(image)
            h, w = gray.shape[:2]
            scale = 1.0
            if max(h, w) > self.analysis_max:
                scale = self.analysis_max / max(h, w)
                gray = cv2.resize(gray, None, fx=scale, fy=scale, interpolation=cv2.INTER_AREA)

            rects = cascade.detectMultiScale(
                gray,
                scaleFactor=self.scale_factor,
                minNeighbors=self.min_neighbors,
                minSize=self.min_size,
            )
        except Exception as e:
            logger.warning("Face detection failed: %s", e)
            return FaceDetection.failed(f"{type(e).__name__}: {e}")

        faces = [
            FaceBox(
                x=int(round(x / scale)),
                y=int(round(y / scale)),
                width=int(round(fw / scale)),
                height=int(round(fh / scale)),
            )
            for (x, y, fw, fh) in rects
        ]
        logger.debug("Detected %d face(s) in %dx%d image", len(faces), *image.size)
        return FaceDetection.found(faces)


def default_locator(enabled: bool = True, cascade_path: Path | None = None) -> FaceLocator:
    """Build the locator for a configuration."""
    if not enabled:
        return NullFaceLocator("face detection disabled by configuration")
    return HaarCascadeLocator(cascade_path)
