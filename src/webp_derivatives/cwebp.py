"""
Wrapper for the cwebp command-line tool.

Used by the cwebp encoder backend when the host prefers libwebp's own
encoder over Pillow's bindings.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from .errors import EncodeError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0


class CwebpError(EncodeError):
    """Raised when cwebp fails to convert an image."""

    def __init__(self, path: Path, command: list[str], returncode: int, stderr: str):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(path, f"cwebp failed (rc={returncode}): {stderr.strip()}")


def run_cwebp(args: list[str], timeout: float = DEFAULT_TIMEOUT) -> tuple[int, str, str]:
    """Run cwebp with the given arguments."""
    try:
        result = subprocess.run(
            args,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
            timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return 124, "", f"TimeoutExpired after {timeout}s"
    except FileNotFoundError:
        return 127, "", "cwebp not found. Install webp package."


def cwebp_args(quality: int, method: int, lossless: bool = False, low_memory: bool = True) -> list[str]:
    """Encoder flags matching the pipeline's quality settings."""
    args = ["-m", str(method)]
    if lossless:
        args += ["-lossless", "-q", "100"]
    else:
        args += ["-q", str(quality)]
    if low_memory:
        args.append("-low_memory")
    return args


def encode_file(
    input_path: Path,
    output_path: Path,
    args: list[str],
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """
    Convert input_path to WebP at output_path.

    Raises:
        CwebpError: If cwebp exits non-zero, times out or is missing
        FileNotFoundError: If input file doesn't exist
    """
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    cmd = ["cwebp", str(input_path), "-o", str(output_path), "-mt"] + args

    logger.debug("Running: %s", " ".join(cmd))
    returncode, _stdout, stderr = run_cwebp(cmd, timeout)

    if returncode != 0:
        raise CwebpError(output_path, cmd, returncode, stderr)
