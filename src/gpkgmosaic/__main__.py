"""CLI entry point for gpkgmosaic."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from tqdm import tqdm

from gpkgmosaic.core.errors import MosaicError
from gpkgmosaic.core.reader import MosaicReader
from gpkgmosaic.core.types import CompositeResult

logger = logging.getLogger(__name__)


def _fail(message: str) -> None:
    click.echo(click.style(f"Error: {message}", fg="red"), err=True)
    sys.exit(1)


def _format_envelope(envelope) -> str:
    return ", ".join(f"{value:.6g}" for value in envelope)


def _save_result(result: CompositeResult, output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.to_png_bytes())


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Composite GeoPackage raster tile pyramids into single images."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("gpkg", type=click.Path(exists=True, dir_okay=False))
def info(gpkg: str) -> None:
    """List the tile pyramids of GPKG and their levels."""
    try:
        with MosaicReader(gpkg) as reader:
            for name in reader.coverage_names:
                pyramid = reader.get_pyramid(name)
                crs = reader.get_crs(name)
                click.echo(click.style(name, fg="cyan", bold=True))
                click.echo(f"  srid: {pyramid.srid} ({crs.name if crs else 'unresolved'})")
                click.echo(f"  bounds: {_format_envelope(pyramid.bounds)}")
                width, height = pyramid.grid_range
                click.echo(f"  grid: {width} x {height} px")
                for level in pyramid.levels:
                    status = "" if level.has_tiles else click.style(" (empty)", fg="yellow")
                    click.echo(
                        f"  zoom {level.zoom_level}: {level.matrix_width}x{level.matrix_height} "
                        f"tiles of {level.tile_width}x{level.tile_height}, "
                        f"pixel {level.pixel_x_size:g} x {level.pixel_y_size:g}{status}"
                    )
    except (MosaicError, FileNotFoundError) as e:
        _fail(str(e))


@main.command()
@click.argument("gpkg", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(), required=True, help="Output PNG file")
@click.option("--coverage", "-c", default=None, help="Tile table to read (default: first)")
@click.option(
    "--bbox",
    nargs=4,
    type=float,
    default=None,
    metavar="MINX MINY MAXX MAXY",
    help="Requested envelope in pyramid units",
)
@click.option("--width", "-w", type=click.IntRange(min=1), default=None, help="Requested output width in pixels")
def read(gpkg: str, output: str, coverage: str | None, bbox, width: int | None) -> None:
    """Composite one area of GPKG into a PNG.

    Without --bbox the whole pyramid is read, at its finest resolution unless
    --width asks for a coarser one.

    Examples:

        # Whole pyramid at native resolution
        python -m gpkgmosaic read world.gpkg -o world.png

        # An area at roughly 512 px wide
        python -m gpkgmosaic read world.gpkg -o area.png --bbox 0 0 1000 1000 -w 512

        # Whole pyramid as an overview about 1024 px wide
        python -m gpkgmosaic read world.gpkg -o overview.png -w 1024
    """
    try:
        with MosaicReader(gpkg) as reader:
            envelope = tuple(bbox) if bbox else None
            if envelope is None and width is not None:
                # the width alone picks the level over the whole pyramid
                envelope = reader.get_original_envelope(coverage)
            result = reader.read(
                envelope=envelope,
                width=width,
                coverage_name=coverage,
            )
    except (MosaicError, FileNotFoundError) as e:
        _fail(str(e))
        return

    if result is None:
        _fail("No tiles cover the requested area")
        return

    _save_result(result, Path(output))
    click.echo(
        f"Wrote {result.width}x{result.height} px from zoom {result.level.zoom_level} "
        f"({result.tile_count} tiles) to {output}"
    )
    click.echo(f"Envelope: {_format_envelope(result.envelope)}")


@main.command()
@click.argument("gpkg", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-o",
    "--output",
    type=click.Path(file_okay=False),
    default="./output",
    help="Output directory for one PNG per coverage",
)
def export(gpkg: str, output: str) -> None:
    """Export every coverage of GPKG at native resolution."""
    output_dir = Path(output)
    written = 0
    empty: list[str] = []
    try:
        with MosaicReader(gpkg) as reader:
            for name in tqdm(reader.coverage_names, desc="Exporting coverages"):
                result = reader.read(coverage_name=name)
                if result is None:
                    logger.info("Coverage %s holds no tiles, skipping", name)
                    empty.append(name)
                    continue
                _save_result(result, output_dir / f"{name}.png")
                written += 1
    except (MosaicError, FileNotFoundError) as e:
        _fail(str(e))
        return

    click.echo(click.style(f"Exported {written} coverage(s) to {output_dir}", fg="green"))
    if empty:
        click.echo(click.style(f"Skipped empty: {', '.join(empty)}", fg="yellow"))


@main.command()
@click.option("--host", default=None, help="Bind address (default: GPKGMOSAIC_WEB_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: GPKGMOSAIC_WEB_PORT)")
def serve(host: str | None, port: int | None) -> None:
    """Serve mosaics of the GeoPackages under GPKGMOSAIC_WEB_DATA_DIRS over HTTP."""
    from gpkgmosaic.server.main import main as serve_main

    serve_main(host=host, port=port)


if __name__ == "__main__":
    main()
