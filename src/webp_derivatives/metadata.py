"""
Attachment metadata rewriting.

The metadata record is host-owned and follows the WordPress attachment
layout: top-level ``file``, ``width``, ``height``, ``mime-type``,
``filesize`` and a ``sizes`` mapping of name -> entry. Only the keys this
pipeline produces are added or overwritten; everything else is preserved.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any, Mapping

from .models import DerivedImageDescriptor

logger = logging.getLogger(__name__)


def _dedupe(paths: list[Path], keep_out: set[Path]) -> list[Path]:
    seen: set[Path] = set()
    result: list[Path] = []
    for path in paths:
        key = path.resolve()
        if key in seen or key in keep_out:
            continue
        seen.add(key)
        result.append(path)
    return result


def apply_descriptors(
    metadata: Mapping[str, Any] | None,
    primary: DerivedImageDescriptor,
    sizes: Mapping[str, DerivedImageDescriptor],
    *,
    source_path: Path,
    capped: bool = False,
) -> tuple[dict[str, Any], list[Path]]:
    """
    Fold descriptors into a copy of ``metadata``.

    Sizes missing from ``sizes`` keep whatever entry the host already had.

    Returns:
        (updated_metadata, retirement_list) where the retirement list holds
        the source original and every replaced sized file that no remaining
        entry still references, for the host to delete once the new metadata
        is stored.
    """
    updated: dict[str, Any] = copy.deepcopy(dict(metadata or {}))
    source_path = Path(source_path)
    directory = source_path.parent
    retire: list[Path] = []

    updated["file"] = primary.relative_file_path
    updated["mime-type"] = primary.mime_type
    updated["filesize"] = primary.byte_size
    if capped or "width" not in updated or "height" not in updated:
        updated["width"] = primary.width
        updated["height"] = primary.height

    existing_sizes = updated.get("sizes")
    if not isinstance(existing_sizes, dict):
        if existing_sizes is not None:
            logger.warning("Replacing malformed sizes entry of type %s", type(existing_sizes).__name__)
        existing_sizes = {}
    updated["sizes"] = existing_sizes

    for name, descriptor in sizes.items():
        old = existing_sizes.get(name)
        old_file = old.get("file") if isinstance(old, dict) else None
        if old_file and old_file != descriptor.relative_file_path:
            retire.append(directory / Path(old_file).name)
        existing_sizes[name] = descriptor.to_metadata_entry()

    if source_path.resolve() != primary.file_path.resolve():
        retire.insert(0, source_path)

    # Files still referenced by the record, new or untouched, must survive.
    keep = {primary.file_path.resolve()}
    keep.update(d.file_path.resolve() for d in sizes.values())
    for name, entry in existing_sizes.items():
        if name in sizes or not isinstance(entry, dict) or not entry.get("file"):
            continue
        keep.add((directory / Path(entry["file"]).name).resolve())
    return updated, _dedupe(retire, keep)
