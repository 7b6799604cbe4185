"""MosaicReader - composites GeoPackage tile pyramids into single rasters."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Iterator

from PIL import Image

from gpkgmosaic.config import DECODE_WORKERS
from gpkgmosaic.store.crs import resolve_crs
from gpkgmosaic.store.decode import decode_tile
from gpkgmosaic.store.geopackage import GeoPackage

from .errors import CatalogError, InvalidCoverageError, TileDecodeError
from .mosaic import compose_mosaic
from .tile_range import compute_tile_range
from .types import (
    CompositeResult,
    Envelope,
    Level,
    Pyramid,
    RequestWindow,
    Tile,
    TileRange,
)
from .zoom import select_level

if TYPE_CHECKING:
    from pyproj import CRS

logger = logging.getLogger(__name__)

Decoder = Callable[[bytes], Image.Image]
CrsResolver = Callable[[int], "CRS | None"]


class MosaicReader:
    """Reads composited rasters out of the tile pyramids of a GeoPackage.

    Args:
        source: Path to a ``.gpkg`` file, or an open tile store exposing
            ``pyramids()``, ``open_tile_cursor()`` and ``close()``
        decoder: Turns tile bytes into a Pillow image
        crs_resolver: Turns a pyramid srid into a reference system, or None
        decode_workers: Threads used to decode the tiles of one read

    Raises:
        CatalogError: If the source holds no tile pyramid
    """

    def __init__(
        self,
        source: str | Path | GeoPackage,
        decoder: Decoder = decode_tile,
        crs_resolver: CrsResolver = resolve_crs,
        decode_workers: int = DECODE_WORKERS,
    ) -> None:
        if isinstance(source, (str, Path)):
            self._store = GeoPackage(source)
            self._owns_store = True
        else:
            self._store = source
            self._owns_store = False

        self._decoder = decoder
        self._decode_workers = max(1, decode_workers)
        self._pyramids: dict[str, Pyramid] = {
            pyramid.name: pyramid for pyramid in self._store.pyramids()
        }
        if not self._pyramids:
            self.close()
            raise CatalogError("The GeoPackage holds no tile pyramids")

        self._crs: dict[str, CRS | None] = {
            name: crs_resolver(pyramid.srid) for name, pyramid in self._pyramids.items()
        }
        # Sane default when no name is given; most packages hold one coverage
        self._coverage_name = next(iter(self._pyramids))

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @property
    def coverage_names(self) -> list[str]:
        return list(self._pyramids)

    @property
    def coverage_count(self) -> int:
        return len(self._pyramids)

    @property
    def coverage_name(self) -> str:
        """Coverage used when an operation is not given a name."""
        return self._coverage_name

    @coverage_name.setter
    def coverage_name(self, name: str) -> None:
        self.get_pyramid(name)
        self._coverage_name = name

    def check_name(self, name: str) -> bool:
        """Whether ``name`` is a coverage of this package."""
        if name is None:
            raise ValueError("coverage name must not be None")
        return name in self._pyramids

    def get_pyramid(self, name: str | None = None) -> Pyramid:
        name = self._coverage_name if name is None else name
        if not self.check_name(name):
            raise InvalidCoverageError(name, self.coverage_names)
        return self._pyramids[name]

    def get_original_envelope(self, name: str | None = None) -> Envelope:
        """Footprint of the pyramid, shared by all levels."""
        return self.get_pyramid(name).bounds

    def get_original_grid_range(self, name: str | None = None) -> tuple[int, int]:
        """(pixel width, pixel height) of the finest level."""
        return self.get_pyramid(name).grid_range

    def get_highest_resolution(self, name: str | None = None) -> tuple[float, float]:
        """(pixel x size, pixel y size) of the finest level."""
        return self.get_pyramid(name).highest_resolution

    def get_crs(self, name: str | None = None) -> CRS | None:
        pyramid = self.get_pyramid(name)
        return self._crs[pyramid.name]

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def plan_read(
        self,
        envelope: Envelope | tuple[float, float, float, float] | None = None,
        width: int | None = None,
        height: int | None = None,
        coverage_name: str | None = None,
    ) -> tuple[Level, TileRange] | None:
        """Level and tile range a ``read`` with the same arguments would use.

        Nothing is fetched or decoded, so callers can bound the output size
        (``len(range.columns) * level.tile_width`` pixels at most) up front.

        Returns:
            (Level, TileRange), or None if no level of the pyramid holds tiles

        Raises:
            InvalidCoverageError: If the coverage is unknown
        """
        pyramid = self.get_pyramid(coverage_name)
        if envelope is not None:
            envelope = Envelope(*envelope)
        request = RequestWindow(envelope=envelope, width=width, height=height)

        level = select_level(pyramid, request)
        if level is None:
            return None

        origin_x, origin_y = pyramid.origin
        target = envelope if envelope is not None else pyramid.bounds
        return level, compute_tile_range(target, level, origin_x, origin_y)

    def read(
        self,
        envelope: Envelope | tuple[float, float, float, float] | None = None,
        width: int | None = None,
        height: int | None = None,
        coverage_name: str | None = None,
    ) -> CompositeResult | None:
        """Composite the tiles covering ``envelope`` at the best-matching level.

        Args:
            envelope: Requested area in pyramid units; None reads the whole
                pyramid
            width: Requested output width in pixels; drives level choice
            height: Requested output height in pixels (informational)
            coverage_name: Tile table to read; defaults to ``coverage_name``

        Returns:
            CompositeResult covering whole tiles, or None if no tile covers
            the request

        Raises:
            InvalidCoverageError: If the coverage is unknown
            TileDecodeError: If any tile in range cannot be decoded
        """
        pyramid = self.get_pyramid(coverage_name)
        plan = self.plan_read(envelope, width, height, pyramid.name)
        if plan is None:
            return None

        level, tile_range = plan
        origin_x, origin_y = pyramid.origin
        logger.debug(
            "Reading %s zoom %d tiles %s", pyramid.name, level.zoom_level, tile_range
        )

        with self._store.open_tile_cursor(
            pyramid.name,
            level.zoom_level,
            tile_range.left,
            tile_range.right,
            tile_range.top,
            tile_range.bottom,
        ) as cursor:
            result = compose_mosaic(
                self._decode_tiles(cursor),
                level,
                tile_range,
                (origin_x, origin_y),
                coverage_name=pyramid.name,
                crs=self._crs[pyramid.name],
            )

        if result is None:
            logger.debug("No tiles stored for %s in %s", pyramid.name, tile_range)
        else:
            logger.debug(
                "Composited %d tile(s) of %s into %dx%d",
                result.tile_count, pyramid.name, result.width, result.height,
            )
        return result

    def _decode_one(self, tile: Tile) -> tuple[Tile, Image.Image]:
        try:
            return tile, self._decoder(tile.data)
        except TileDecodeError as e:
            raise TileDecodeError(
                str(e), zoom_level=tile.zoom_level, column=tile.column, row=tile.row
            ) from e

    def _decode_tiles(self, tiles: Iterable[Tile]) -> Iterator[tuple[Tile, Image.Image]]:
        if self._decode_workers == 1:
            for tile in tiles:
                yield self._decode_one(tile)
            return

        with ThreadPoolExecutor(max_workers=self._decode_workers) as executor:
            yield from executor.map(self._decode_one, tiles)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the store if this reader opened it."""
        if self._owns_store:
            self._store.close()

    def __enter__(self) -> MosaicReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
