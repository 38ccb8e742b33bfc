"""
Host boundary for the derivative pipeline.

``process`` never raises. On any unrecoverable failure it hands back the
host's metadata object untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from .budget import memory_budget
from .config import PipelineConfig
from .convert import TranscodeJob, TranscodeResult, is_supported_source
from .encode import WebPEncoder, make_encoder
from .errors import TranscodeError
from .faces import FaceLocator, default_locator
from .metadata import apply_descriptors
from .models import SizeSpec

logger = logging.getLogger(__name__)


@dataclass
class ProcessOutcome:
    """What the host gets back from ``process``."""

    metadata: Mapping[str, Any] | None
    retirement_list: list[Path] = field(default_factory=list)
    converted: bool = False
    error: str | None = None
    result: TranscodeResult | None = None

    @property
    def failed_sizes(self) -> list[str]:
        if self.result is None:
            return []
        return [o.spec.name for o in self.result.failures]


def process(
    source_path: Path | str,
    size_specs: Iterable[SizeSpec] | None = None,
    existing_metadata: Mapping[str, Any] | None = None,
    config: PipelineConfig | None = None,
    face_locator: FaceLocator | None = None,
    encoder: WebPEncoder | None = None,
) -> ProcessOutcome:
    """
    Convert an attachment to WebP and rewrite its metadata.

    Unsupported extensions pass through untouched. Decode failures and
    primary encode/write failures return ``existing_metadata`` unchanged.
    """
    config = config or PipelineConfig()
    source = Path(source_path)
    specs = tuple(size_specs) if size_specs is not None else config.sizes

    if not is_supported_source(source):
        logger.debug("Skipping %s: not a JPEG or PNG", source.name)
        return ProcessOutcome(metadata=existing_metadata)

    if face_locator is None:
        face_locator = default_locator(config.face_detection, config.cascade_path)
    if encoder is None:
        encoder = make_encoder(config.encoder, config.quality, config.method)

    existing_file = None
    if existing_metadata and isinstance(existing_metadata.get("file"), str):
        existing_file = existing_metadata["file"]

    with memory_budget(config.memory_limit_mb):
        try:
            job = TranscodeJob(
                source,
                specs,
                encoder=encoder,
                face_locator=face_locator,
                max_width=config.max_width,
                max_height=config.max_height,
                upload_dir=config.upload_dir,
                existing_file=existing_file,
            )
            result = job.run()
            updated, retire = apply_descriptors(
                existing_metadata,
                result.primary,
                result.sizes,
                source_path=source,
                capped=result.capped,
            )
        except TranscodeError as e:
            logger.error("Conversion of %s aborted, keeping original: %s", source.name, e)
            return ProcessOutcome(metadata=existing_metadata, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error converting %s", source.name)
            return ProcessOutcome(metadata=existing_metadata, error=f"{type(e).__name__}: {e}")

    return ProcessOutcome(
        metadata=updated,
        retirement_list=retire,
        converted=True,
        result=result,
    )


def retire_files(paths: Iterable[Path]) -> list[Path]:
    """
    Delete retired originals. Call only after the new metadata is stored.

    Missing files are skipped. Returns the paths actually removed.
    """
    removed: list[Path] = []
    for path in paths:
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.debug("Already gone: %s", path)
            continue
        except OSError as e:
            logger.warning("Could not retire %s: %s", path, e)
            continue
        removed.append(Path(path))
        logger.info("Retired %s", path)
    return removed
