"""
WebP encoders.

Every encoder writes to a temporary sibling file and renames it into place,
so a failed encode or write never leaves a partial file at the destination.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Protocol

from PIL import Image

from . import cwebp
from .errors import EncodeError, WriteError

logger = logging.getLogger(__name__)


class WebPEncoder(Protocol):
    """Encodes an image to a WebP file and returns the written byte size."""

    def encode(self, image: Image.Image, dest: Path) -> int:
        ...


def _temp_path(dest: Path) -> Path:
    return dest.with_name(f".{dest.name}.{os.getpid()}.tmp")


def atomic_write(dest: Path, write: Callable[[Path], None]) -> int:
    """
    Call write(tmp) then move tmp onto dest.

    Raises:
        WriteError: If the file system refuses the write or rename
        EncodeError: If the encoder itself fails
    """
    tmp = _temp_path(dest)
    try:
        try:
            write(tmp)
        except EncodeError:
            raise
        except OSError as e:
            if e.errno is not None:
                raise WriteError(dest, str(e)) from e
            raise EncodeError(dest, str(e)) from e
        except (ValueError, KeyError) as e:
            raise EncodeError(dest, str(e)) from e

        try:
            os.replace(tmp, dest)
            return dest.stat().st_size
        except OSError as e:
            raise WriteError(dest, str(e)) from e
    finally:
        if tmp.exists():
            tmp.unlink()


@dataclass(frozen=True)
class PillowWebPEncoder:
    """Lossy (or lossless) WebP through Pillow's libwebp bindings."""

    quality: int = 85
    method: int = 4
    lossless: bool = False

    def encode(self, image: Image.Image, dest: Path) -> int:
        def write(tmp: Path) -> None:
            image.save(
                tmp,
                format="WEBP",
                quality=self.quality,
                method=self.method,
                lossless=self.lossless,
            )

        size = atomic_write(dest, write)
        logger.debug("Wrote %s (%d bytes) via Pillow", dest.name, size)
        return size


@dataclass(frozen=True)
class CwebpEncoder:
    """WebP through the cwebp binary, fed an intermediate lossless PNG."""

    quality: int = 85
    method: int = 4
    lossless: bool = False
    low_memory: bool = True
    timeout: float = cwebp.DEFAULT_TIMEOUT

    def encode(self, image: Image.Image, dest: Path) -> int:
        args = cwebp.cwebp_args(self.quality, self.method, self.lossless, self.low_memory)

        def write(tmp: Path) -> None:
            with tempfile.TemporaryDirectory(prefix="webp-derivatives-") as work:
                intermediate = Path(work) / "frame.png"
                image.save(intermediate, format="PNG")
                cwebp.encode_file(intermediate, tmp, args, timeout=self.timeout)

        size = atomic_write(dest, write)
        logger.debug("Wrote %s (%d bytes) via cwebp", dest.name, size)
        return size


def make_encoder(
    name: str = "pillow",
    quality: int = 85,
    method: int = 4,
    lossless: bool = False,
) -> WebPEncoder:
    """Encoder by backend name ("pillow" or "cwebp")."""
    if name == "pillow":
        return PillowWebPEncoder(quality=quality, method=method, lossless=lossless)
    if name == "cwebp":
        return CwebpEncoder(quality=quality, method=method, lossless=lossless)
    raise ValueError(f"Unknown WebP encoder: {name!r}")
