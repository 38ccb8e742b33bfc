"""CLI host for the WebP derivative pipeline."""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

import click
from PIL import Image

from .config import ENCODERS, PipelineConfig
from .convert import SOURCE_FORMATS, decode_image, is_supported_source
from .errors import DecodeError
from .faces import default_locator
from .geometry import cap_dimensions
from .models import SizeSpec, parse_size_spec
from .pipeline import process, retire_files
from .strategy import CropStrategySelector


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _parse_sizes(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> tuple[SizeSpec, ...] | None:
    if not value:
        return None
    try:
        return tuple(parse_size_spec(v) for v in value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def _load_config(**overrides: Any) -> PipelineConfig:
    try:
        config = PipelineConfig.load()
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(config, **changes)
    except ValueError as e:
        raise click.UsageError(str(e)) from e


def _read_metadata(path: Path | None) -> dict[str, Any]:
    if path is None or not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise click.UsageError(f"{path} does not hold a JSON object")
    return data


def _write_metadata(path: Path, metadata: Any) -> None:
    """Write JSON durably: temp file, fsync, rename."""
    tmp = path.with_name(f".{path.name}.tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2)
        f.write("\n")
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


size_option = click.option(
    "-s", "--size", "sizes", multiple=True, callback=_parse_sizes,
    help="Output size as name:WxH[:crop]; repeatable. Defaults to WEBP_SIZES.",
)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
def cli(verbose: bool) -> None:
    """Convert JPEG/PNG uploads into WebP primaries and sized derivatives."""
    _setup_logging(verbose)


@cli.command()
@click.argument("source", type=click.Path(dir_okay=False, path_type=Path))
@click.option("-m", "--metadata", "metadata_path", type=click.Path(dir_okay=False, path_type=Path),
              help="JSON attachment metadata to read.")
@click.option("-o", "--output", type=click.Path(dir_okay=False, path_type=Path),
              help="Where to write updated metadata. Defaults to --metadata, else stdout.")
@size_option
@click.option("--max-width", type=int, help="Global maximum width")
@click.option("--max-height", type=int, help="Global maximum height")
@click.option("-q", "--quality", type=int, help="WebP quality 0-100")
@click.option("--encoder", type=click.Choice(ENCODERS), help="WebP encoder backend")
@click.option("--faces/--no-faces", default=None, help="Bias crops toward detected faces")
@click.option("--upload-dir", type=click.Path(file_okay=False, path_type=Path),
              help="Base directory the primary file path is recorded relative to")
@click.option("--retire", is_flag=True, help="Delete originals after metadata is written")
def convert(source: Path, metadata_path: Path | None, output: Path | None,
            sizes: tuple[SizeSpec, ...] | None, max_width: int | None, max_height: int | None,
            quality: int | None, encoder: str | None, faces: bool | None,
            upload_dir: Path | None, retire: bool) -> None:
    """Convert SOURCE and print or store its updated metadata."""
    config = _load_config(
        max_width=max_width, max_height=max_height, quality=quality,
        encoder=encoder, face_detection=faces, upload_dir=upload_dir,
    )
    output = output or metadata_path
    if retire and output is None:
        raise click.UsageError("--retire needs --output or --metadata so metadata is stored first")

    metadata = _read_metadata(metadata_path)
    outcome = process(source, sizes, metadata, config=config)

    if output is None:
        click.echo(json.dumps(outcome.metadata, indent=2))
    else:
        _write_metadata(output, outcome.metadata)
        logging.info("Metadata written to %s", output)

    for name in outcome.failed_sizes:
        click.echo(f"warning: size {name} was not converted", err=True)

    if outcome.error:
        click.echo(f"error: {outcome.error}", err=True)
        sys.exit(1)

    if retire and outcome.converted:
        removed = retire_files(outcome.retirement_list)
        logging.info("Retired %d original file(s)", len(removed))


@cli.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@size_option
@click.option("--max-width", type=int, help="Global maximum width")
@click.option("--max-height", type=int, help="Global maximum height")
@click.option("--faces/--no-faces", default=None, help="Bias crops toward detected faces")
def plan(source: Path, sizes: tuple[SizeSpec, ...] | None, max_width: int | None,
         max_height: int | None, faces: bool | None) -> None:
    """Show how SOURCE would be capped and cropped, without writing files."""
    config = _load_config(max_width=max_width, max_height=max_height, face_detection=faces)
    if not is_supported_source(source):
        raise click.UsageError(f"{source.name} is not a JPEG or PNG")

    try:
        img = decode_image(source, SOURCE_FORMATS)
    except DecodeError as e:
        raise click.ClickException(str(e)) from e

    width, height = cap_dimensions(*img.size, config.max_width, config.max_height)
    click.echo(f"primary: {img.size[0]}x{img.size[1]} -> {width}x{height}")
    if (width, height) != img.size:
        img = img.resize((width, height), Image.Resampling.LANCZOS)

    selector = CropStrategySelector(default_locator(config.face_detection, config.cascade_path))
    for spec in sizes or config.sizes:
        size_plan = selector.plan(spec, img)
        line = f"{spec.name}: {size_plan.kind} {size_plan.width}x{size_plan.height}"
        if size_plan.crop is not None:
            c = size_plan.crop
            line += f" from ({c.x}, {c.y}) {c.width}x{c.height}"
        click.echo(line)

    if selector.detection is not None:
        d = selector.detection
        detail = f"{len(d.faces)} face(s)" if d.status == "available" else d.reason
        click.echo(f"faces: {d.status} ({detail})")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
