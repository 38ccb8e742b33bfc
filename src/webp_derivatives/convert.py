"""
Transcode orchestration for WebP derivatives.

This module handles the per-image workflow:
1. Decode the source and cap it to the global maximum
2. Encode the primary WebP next to the source
3. For each size, decode the primary again, plan fit or crop, encode

Failures before the primary is written abort the job. Failures on a single
size are recorded and the remaining sizes still run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Literal

from PIL import Image, ImageOps
from werkzeug.utils import secure_filename

from .encode import PillowWebPEncoder, WebPEncoder
from .errors import DecodeError, TranscodeError
from .faces import FaceDetection, FaceLocator
from .geometry import cap_dimensions
from .models import (
    PRIMARY_SIZE_NAME,
    DerivedImageDescriptor,
    SizeOutcome,
    SizeSpec,
    partition_outcomes,
)
from .strategy import CropStrategySelector, SizePlan

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSIONS: frozenset[str] = frozenset({".jpg", ".jpeg", ".png"})
SOURCE_FORMATS: frozenset[str] = frozenset({"JPEG", "MPO", "PNG"})
# Camera JPEGs carrying extra frames (depth maps, previews); frame 0 is the photo.
FIRST_FRAME_FORMATS: frozenset[str] = frozenset({"MPO"})
PRIMARY_FORMATS: frozenset[str] = frozenset({"WEBP"})

JobStage = Literal[
    "start",
    "primary_decoded",
    "primary_capped",
    "primary_encoded",
    "sizes",
    "done",
    "aborted",
]


def is_supported_source(path: Path) -> bool:
    """True for .jpg/.jpeg/.png, case-insensitive."""
    return path.suffix.lower() in ACCEPTED_EXTENSIONS


def primary_path(source: Path) -> Path:
    return source.with_suffix(".webp")


def size_filename(source: Path, spec: SizeSpec, width: int, height: int) -> str:
    """File name for a size: dimensions for fit sizes, size name for crops."""
    if spec.is_crop:
        label = secure_filename(spec.name) or f"{width}x{height}"
        return f"{source.stem}-{label}.webp"
    return f"{source.stem}-{width}x{height}.webp"


def primary_relative_path(
    webp_path: Path,
    upload_dir: Path | None = None,
    existing_file: str | None = None,
) -> str:
    """
    Path recorded in metadata for the primary file.

    Relative to upload_dir when the file is inside it, otherwise next to the
    host's existing entry, otherwise the bare file name.
    """
    if upload_dir is not None:
        try:
            return webp_path.resolve().relative_to(upload_dir.resolve()).as_posix()
        except ValueError:
            logger.debug("%s is outside upload dir %s", webp_path, upload_dir)
    if existing_file:
        return str(PurePosixPath(existing_file).with_name(webp_path.name))
    return webp_path.name


def _normalize_mode(img: Image.Image) -> Image.Image:
    has_alpha = img.mode in ("RGBA", "LA") or (
        img.mode == "P" and "transparency" in img.info
    )
    if has_alpha:
        return img if img.mode == "RGBA" else img.convert("RGBA")
    return img if img.mode == "RGB" else img.convert("RGB")


def decode_image(path: Path, formats: frozenset[str]) -> Image.Image:
    """
    Decode a single-frame raster, apply EXIF orientation and normalise mode.

    Multi-picture JPEGs decode their first frame; other multi-frame files are
    rejected.

    Raises DecodeError: If the file is unreadable or not in formats
    """
    try:
        with Image.open(path) as src:
            if src.format not in formats:
                raise DecodeError(path, f"unsupported format {src.format}")
            if src.format in FIRST_FRAME_FORMATS:
                src.seek(0)
            elif getattr(src, "n_frames", 1) != 1:
                raise DecodeError(path, "multi-frame images are not supported")
            img = ImageOps.exif_transpose(src)
            img.load()
    except DecodeError:
        raise
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(path, str(e)) from e
    return _normalize_mode(img)


def render(image: Image.Image, plan: SizePlan) -> Image.Image:
    """Apply a plan: crop-and-scale or plain scale."""
    box = plan.crop.box if plan.crop is not None else None
    if box is None and image.size == (plan.width, plan.height):
        return image.copy()
    return image.resize((plan.width, plan.height), Image.Resampling.LANCZOS, box=box)


@dataclass
class TranscodeResult:
    """Primary descriptor plus one outcome per requested size."""

    source_path: Path
    source_size: tuple[int, int]
    primary: DerivedImageDescriptor
    capped: bool
    outcomes: list[SizeOutcome] = field(default_factory=list)
    detection: FaceDetection | None = None

    @property
    def sizes(self) -> dict[str, DerivedImageDescriptor]:
        return partition_outcomes(self.outcomes)[0]

    @property
    def failures(self) -> list[SizeOutcome]:
        return partition_outcomes(self.outcomes)[1]


class TranscodeJob:
    """
    Converts one source image into a primary WebP plus sized WebPs.

    ``stage`` follows start -> primary_decoded -> primary_capped ->
    primary_encoded -> sizes -> done, or ends in aborted.
    """

    def __init__(
        self,
        source_path: Path | str,
        size_specs: list[SizeSpec] | tuple[SizeSpec, ...],
        encoder: WebPEncoder | None = None,
        face_locator: FaceLocator | None = None,
        max_width: int = 1920,
        max_height: int = 1080,
        upload_dir: Path | None = None,
        existing_file: str | None = None,
    ):
        self.source_path = Path(source_path)
        if not is_supported_source(self.source_path):
            raise ValueError(f"Unsupported input format: {self.source_path.suffix}")

        self.size_specs = tuple(size_specs)
        self.encoder = encoder or PillowWebPEncoder()
        self.selector = CropStrategySelector(face_locator)
        self.max_width = max_width
        self.max_height = max_height
        self.upload_dir = upload_dir
        self.existing_file = existing_file
        self.stage: JobStage = "start"

    def run(self) -> TranscodeResult:
        """
        Execute the job.

        Raises:
            DecodeError: If the source cannot be decoded
            EncodeError: If the primary cannot be encoded
            WriteError: If the primary cannot be written
        """
        try:
            result = self._run_primary()
            self.stage = "sizes"
            for spec in self.size_specs:
                result.outcomes.append(self._run_size(spec, result.primary.file_path))
            result.detection = self.selector.detection
        except BaseException:
            self.stage = "aborted"
            raise

        self.stage = "done"
        logger.info(
            "Converted %s: primary %dx%d, %d/%d sizes",
            self.source_path.name, result.primary.width, result.primary.height,
            len(result.sizes), len(self.size_specs),
        )
        return result

    def _run_primary(self) -> TranscodeResult:
        img = decode_image(self.source_path, SOURCE_FORMATS)
        self.stage = "primary_decoded"
        source_size = img.size

        width, height = cap_dimensions(*source_size, self.max_width, self.max_height)
        capped = (width, height) != source_size
        if capped:
            logger.debug(
                "Capping %s from %dx%d to %dx%d",
                self.source_path.name, *source_size, width, height,
            )
            resized = img.resize((width, height), Image.Resampling.LANCZOS)
            img.close()
            img = resized
        self.stage = "primary_capped"

        dest = primary_path(self.source_path)
        try:
            byte_size = self.encoder.encode(img, dest)
        finally:
            img.close()
        self.stage = "primary_encoded"

        primary = DerivedImageDescriptor(
            size_name=PRIMARY_SIZE_NAME,
            relative_file_path=primary_relative_path(dest, self.upload_dir, self.existing_file),
            width=width,
            height=height,
            byte_size=byte_size,
            file_path=dest,
        )
        return TranscodeResult(
            source_path=self.source_path,
            source_size=source_size,
            primary=primary,
            capped=capped,
        )

    def _run_size(self, spec: SizeSpec, primary_file: Path) -> SizeOutcome:
        try:
            descriptor = self._convert_size(spec, primary_file)
        except TranscodeError as e:
            logger.warning("Size %s skipped: %s", spec.name, e)
            return SizeOutcome(spec=spec, error=str(e))
        except Exception as e:
            logger.warning("Size %s skipped: %s: %s", spec.name, type(e).__name__, e)
            return SizeOutcome(spec=spec, error=f"{type(e).__name__}: {e}")
        return SizeOutcome(spec=spec, descriptor=descriptor)

    def _convert_size(self, spec: SizeSpec, primary_file: Path) -> DerivedImageDescriptor:
        working = decode_image(primary_file, PRIMARY_FORMATS)
        try:
            plan = self.selector.plan(spec, working)
            out = render(working, plan)
        finally:
            working.close()

        dest = self.source_path.with_name(
            size_filename(self.source_path, spec, plan.width, plan.height)
        )
        try:
            byte_size = self.encoder.encode(out, dest)
        finally:
            out.close()

        logger.debug("Size %s (%s): %s %dx%d", spec.name, plan.kind, dest.name, plan.width, plan.height)
        return DerivedImageDescriptor(
            size_name=spec.name,
            relative_file_path=dest.name,
            width=plan.width,
            height=plan.height,
            byte_size=byte_size,
            file_path=dest,
        )
