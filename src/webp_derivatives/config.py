"""Configuration for the derivative pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .models import DEFAULT_SIZES, SizeSpec, parse_size_specs

ENCODERS = ("pillow", "cwebp")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_path(name: str) -> Path | None:
    value = os.getenv(name)
    return Path(value) if value else None


@dataclass(frozen=True)
class PipelineConfig:
    """Global tunables. Size specs here are defaults; hosts may pass their own."""

    max_width: int = 1920
    max_height: int = 1080
    quality: int = 85
    method: int = 4
    encoder: str = "pillow"
    face_detection: bool = True
    cascade_path: Path | None = None
    memory_limit_mb: int | None = 256
    upload_dir: Path | None = None
    sizes: tuple[SizeSpec, ...] = field(default=DEFAULT_SIZES)

    def __post_init__(self) -> None:
        if self.max_width <= 0 or self.max_height <= 0:
            raise ValueError("Global max dimensions must be positive")
        if not 0 <= self.quality <= 100:
            raise ValueError(f"WebP quality must be 0..100, got {self.quality}")
        if not 0 <= self.method <= 6:
            raise ValueError(f"WebP method must be 0..6, got {self.method}")
        if self.encoder not in ENCODERS:
            raise ValueError(f"Unknown encoder {self.encoder!r}, expected one of {ENCODERS}")

    @classmethod
    def load(cls) -> PipelineConfig:
        """Load from environment variables."""
        sizes = os.getenv("WEBP_SIZES")
        memory = os.getenv("WEBP_MEMORY_LIMIT_MB", "256")
        return cls(
            max_width=int(os.getenv("WEBP_MAX_WIDTH", "1920")),
            max_height=int(os.getenv("WEBP_MAX_HEIGHT", "1080")),
            quality=int(os.getenv("WEBP_QUALITY", "85")),
            method=int(os.getenv("WEBP_METHOD", "4")),
            encoder=os.getenv("WEBP_ENCODER", "pillow"),
            face_detection=_env_bool("WEBP_FACE_DETECTION", True),
            cascade_path=_env_path("WEBP_FACE_CASCADE"),
            memory_limit_mb=int(memory) if memory.strip() not in ("", "0") else None,
            upload_dir=_env_path("WEBP_UPLOAD_DIR"),
            sizes=parse_size_specs(sizes) if sizes else DEFAULT_SIZES,
        )
