"""
WebP derivative pipeline.

Turns one JPEG/PNG upload into a capped primary WebP plus named sized WebPs
(fit-scaled or cover-cropped, optionally biased toward faces) and rewrites
the attachment metadata to describe them.

This package has no networking dependencies. It's pure image processing.
"""

from .config import PipelineConfig
from .convert import TranscodeJob, TranscodeResult
from .errors import DecodeError, EncodeError, TranscodeError, WriteError
from .faces import FaceBox, FaceDetection, HaarCascadeLocator, NullFaceLocator
from .geometry import CropDecision, cover_crop_box, face_centroid, fit_scale
from .metadata import apply_descriptors
from .models import DerivedImageDescriptor, SizeSpec, parse_size_specs
from .pipeline import ProcessOutcome, process, retire_files

__all__ = [
    "PipelineConfig",
    "TranscodeJob",
    "TranscodeResult",
    "TranscodeError",
    "DecodeError",
    "EncodeError",
    "WriteError",
    "FaceBox",
    "FaceDetection",
    "HaarCascadeLocator",
    "NullFaceLocator",
    "CropDecision",
    "fit_scale",
    "cover_crop_box",
    "face_centroid",
    "apply_descriptors",
    "DerivedImageDescriptor",
    "SizeSpec",
    "parse_size_specs",
    "ProcessOutcome",
    "process",
    "retire_files",
]
