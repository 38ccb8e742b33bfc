"""
Value types shared across the pipeline.

SizeSpec is supplied by the host, DerivedImageDescriptor is produced once
per written file. Both are immutable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

WEBP_MIME_TYPE = "image/webp"
PRIMARY_SIZE_NAME = "full"


@dataclass(frozen=True)
class SizeSpec:
    """Named output target. A zero bound means "derive from aspect ratio"."""

    name: str
    max_width: int
    max_height: int
    crop: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("SizeSpec.name must not be empty")
        if self.max_width < 0 or self.max_height < 0:
            raise ValueError(f"Negative bound in size {self.name!r}")
        if self.max_width == 0 and self.max_height == 0:
            raise ValueError(f"Size {self.name!r} needs at least one bound")

    @property
    def is_crop(self) -> bool:
        """True when the size should be cover-cropped to exact dimensions."""
        return self.crop and self.max_width > 0 and self.max_height > 0


@dataclass(frozen=True)
class DerivedImageDescriptor:
    """Description of one written WebP file."""

    size_name: str
    relative_file_path: str
    width: int
    height: int
    byte_size: int
    file_path: Path
    mime_type: str = WEBP_MIME_TYPE

    def to_metadata_entry(self) -> dict[str, object]:
        return {
            "file": self.relative_file_path,
            "width": self.width,
            "height": self.height,
            "mime-type": self.mime_type,
            "filesize": self.byte_size,
        }


@dataclass(frozen=True)
class SizeOutcome:
    """Result of processing one SizeSpec: a descriptor or an error message."""

    spec: SizeSpec
    descriptor: DerivedImageDescriptor | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.descriptor is not None


def partition_outcomes(
    outcomes: list[SizeOutcome],
) -> tuple[dict[str, DerivedImageDescriptor], list[SizeOutcome]]:
    """Split outcomes into an ordered name -> descriptor mapping and failures."""
    successes: dict[str, DerivedImageDescriptor] = {}
    failures: list[SizeOutcome] = []
    for outcome in outcomes:
        if outcome.descriptor is not None:
            successes[outcome.spec.name] = outcome.descriptor
        else:
            failures.append(outcome)
    return successes, failures


def parse_size_spec(text: str) -> SizeSpec:
    """
    Parse ``name:WxH`` or ``name:WxH:crop``.

    Raises ValueError: If the text is malformed
    """
    parts = [p.strip() for p in text.strip().split(":")]
    if len(parts) not in (2, 3) or not parts[0]:
        raise ValueError(f"Invalid size spec {text!r}, expected name:WxH[:crop]")

    name, dims = parts[0], parts[1].lower()
    crop = False
    if len(parts) == 3:
        if parts[2].lower() not in ("crop", "fit"):
            raise ValueError(f"Invalid size mode {parts[2]!r} in {text!r}")
        crop = parts[2].lower() == "crop"

    try:
        w_str, h_str = dims.split("x")
        width, height = int(w_str), int(h_str)
    except ValueError:
        raise ValueError(f"Invalid dimensions {parts[1]!r} in {text!r}") from None

    return SizeSpec(name=name, max_width=width, max_height=height, crop=crop)


def parse_size_specs(text: str) -> tuple[SizeSpec, ...]:
    """Parse a comma-separated list of size specs."""
    specs = tuple(parse_size_spec(chunk) for chunk in text.split(",") if chunk.strip())
    names = [s.name for s in specs]
    if len(set(names)) != len(names):
        raise ValueError(f"Duplicate size names in {text!r}")
    return specs


DEFAULT_SIZES: tuple[SizeSpec, ...] = (
    SizeSpec("thumbnail", 150, 150, crop=True),
    SizeSpec("medium", 300, 300),
    SizeSpec("large", 1024, 1024),
)
