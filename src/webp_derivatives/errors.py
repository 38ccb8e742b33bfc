"""Exception taxonomy for the derivative pipeline."""

from __future__ import annotations

from pathlib import Path


class TranscodeError(RuntimeError):
    """Base class for decode/encode/write failures on a single file."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        super().__init__(f"{self.path.name}: {message}")


class DecodeError(TranscodeError):
    """Raised when a file is unreadable or not a supported raster format."""


class EncodeError(TranscodeError):
    """Raised when WebP encoding fails."""


class WriteError(TranscodeError):
    """Raised when an encoded file cannot be written to disk."""
