"""
Pure geometry for fit-scaling and cover-cropping.

No I/O. Inputs are assumed to be positive pixel dimensions taken from a
decoded image.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Protocol


class _Box(Protocol):
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CropDecision:
    """Region of the source to crop, always inside the source bounds."""

    x: int
    y: int
    width: int
    height: int

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) as Pillow expects it."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def round_half_up(value: float) -> int:
    """Round to nearest integer with halves going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def fit_scale(src_w: int, src_h: int, max_w: int, max_h: int) -> tuple[int, int]:
    """
    Largest (w, h) inside (max_w, max_h) with the source aspect ratio.

    A zero max_h leaves height unconstrained (width is fixed), a zero max_w
    leaves width unconstrained. The result may be larger than the source.
    """
    if max_h == 0:
        return max_w, max(1, round_half_up(max_w * src_h / src_w))
    if max_w == 0:
        return max(1, round_half_up(max_h * src_w / src_h)), max_h

    if src_w / max_w > src_h / max_h:
        return max_w, max(1, round_half_up(max_w * src_h / src_w))
    return max(1, round_half_up(max_h * src_w / src_h)), max_h


def cap_dimensions(src_w: int, src_h: int, max_w: int, max_h: int) -> tuple[int, int]:
    """Shrink (src_w, src_h) to fit the global maximum. Never upscales."""
    if src_w <= max_w and src_h <= max_h:
        return src_w, src_h
    return fit_scale(src_w, src_h, max_w, max_h)


def cover_crop_box(
    src_w: int,
    src_h: int,
    target_w: int,
    target_h: int,
    center_x: float | None = None,
    center_y: float | None = None,
) -> CropDecision:
    """
    Region of the source that, scaled, exactly covers (target_w, target_h).

    The region is centred on (center_x, center_y), or on the middle of the
    source when no centre is given, then shifted to stay inside the source.
    """
    if center_x is None:
        center_x = src_w / 2
    if center_y is None:
        center_y = src_h / 2

    scale = max(target_w / src_w, target_h / src_h)
    crop_w = min(src_w, max(1, round_half_up(target_w / scale)))
    crop_h = min(src_h, max(1, round_half_up(target_h / scale)))

    x = round_half_up(center_x - crop_w / 2)
    y = round_half_up(center_y - crop_h / 2)
    x = max(0, min(x, src_w - crop_w))
    y = max(0, min(y, src_h - crop_h))

    return CropDecision(x=x, y=y, width=crop_w, height=crop_h)


def face_centroid(faces: Iterable[_Box]) -> tuple[float, float] | None:
    """Unweighted mean of box centres, or None for no boxes."""
    centers = [(f.x + f.width / 2, f.y + f.height / 2) for f in faces]
    if not centers:
        return None
    count = len(centers)
    return (
        sum(cx for cx, _ in centers) / count,
        sum(cy for _, cy in centers) / count,
    )
