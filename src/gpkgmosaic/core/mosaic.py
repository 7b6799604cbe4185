"""Tile mosaicking.

Tiles in a GeoPackage need not be uniform: a table can mix PNG and JPEG and
therefore palettes, grey, RGB and RGBA (GDAL writes PNG only where
transparency is needed). Every tile is normalised to 8-bit RGBA before the
overlay so the compositor never branches on the source colour model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import numpy as np
from PIL import Image

from gpkgmosaic.config import BACKGROUND_RGBA

from .tile_range import tile_envelope
from .types import CompositeResult, Envelope, Level, Tile, TileRange

logger = logging.getLogger(__name__)

_SIXTEEN_BIT_MODES = frozenset({"I;16", "I;16L", "I;16B", "I;16N"})


def to_rgba_array(image: Image.Image) -> np.ndarray:
    """Convert any Pillow image to an (H, W, 4) uint8 RGBA array.

    Palette transparency and grey+alpha are honoured by Pillow's own
    conversion. 16-bit grey keeps its high byte; 32-bit integer and float
    grey are clipped to 0-255.
    """
    if image.mode == "RGBA":
        return np.asarray(image, dtype=np.uint8)

    if image.mode in _SIXTEEN_BIT_MODES:
        grey = (np.asarray(image).astype(np.uint16) >> 8).astype(np.uint8)
        image = Image.fromarray(grey)
    elif image.mode in ("I", "F"):
        grey = np.clip(np.asarray(image), 0, 255).astype(np.uint8)
        image = Image.fromarray(grey)

    return np.asarray(image.convert("RGBA"), dtype=np.uint8)


@dataclass
class TilePlacement:
    """A decoded tile and where it lands in the output."""

    column: int
    row: int
    image: Image.Image
    x: int
    y: int
    envelope: Envelope


class MosaicBuilder:
    """Collects decoded tiles of one level and overlays them.

    Args:
        level: Level the tiles belong to
        tile_range: Range the tiles were requested for; pixel offsets are
            relative to its top-left tile
        origin_x: West edge of the tile matrix
        origin_y: North edge of the tile matrix
    """

    def __init__(
        self,
        level: Level,
        tile_range: TileRange,
        origin_x: float,
        origin_y: float,
    ) -> None:
        self.level = level
        self.tile_range = tile_range
        self.origin_x = origin_x
        self.origin_y = origin_y
        self._placements: list[TilePlacement] = []
        self._envelope: Envelope | None = None

    @property
    def envelope(self) -> Envelope | None:
        """Union of the footprints of the tiles added so far."""
        return self._envelope

    @property
    def tile_count(self) -> int:
        return len(self._placements)

    def add(self, tile: Tile, image: Image.Image) -> TilePlacement:
        """Place a decoded tile."""
        envelope = tile_envelope(
            self.level, tile.column, tile.row, self.origin_x, self.origin_y
        )
        if self._envelope is None:
            self._envelope = envelope
        else:
            self._envelope = self._envelope.union(envelope)

        placement = TilePlacement(
            column=tile.column,
            row=tile.row,
            image=image,
            x=(tile.column - self.tile_range.left) * self.level.tile_width,
            y=(tile.row - self.tile_range.top) * self.level.tile_height,
            envelope=envelope,
        )
        self._placements.append(placement)
        return placement

    def build(self) -> tuple[Image.Image, Envelope] | None:
        """Return the composited image and its envelope.

        Returns:
            None when no tile was added. A single tile is returned as-is.
        """
        if not self._placements:
            return None
        if len(self._placements) == 1:
            only = self._placements[0]
            return only.image, self._envelope

        return self._overlay(), self._envelope

    def _overlay(self) -> Image.Image:
        placements = sorted(self._placements, key=lambda p: (p.row, p.column))

        origin_x = min(p.x for p in placements)
        origin_y = min(p.y for p in placements)
        width = max(p.x + p.image.width for p in placements) - origin_x
        height = max(p.y + p.image.height for p in placements) - origin_y

        canvas = np.empty((height, width, 4), dtype=np.uint8)
        canvas[...] = BACKGROUND_RGBA

        for placement in placements:
            rgba = to_rgba_array(placement.image)
            h, w = rgba.shape[:2]
            x = placement.x - origin_x
            y = placement.y - origin_y
            target = canvas[y : y + h, x : x + w]
            defined = rgba[..., 3] > 0
            target[defined] = rgba[defined]

        logger.debug(
            "Overlaid %d tiles into %dx%d canvas", len(placements), width, height
        )
        return Image.fromarray(canvas)


def compose_mosaic(
    tiles: Iterable[tuple[Tile, Image.Image]],
    level: Level,
    tile_range: TileRange,
    origin: tuple[float, float],
    coverage_name: str = "",
    crs=None,
) -> CompositeResult | None:
    """Composite decoded tiles into a single result.

    Args:
        tiles: (Tile, decoded image) pairs, in any order
        level: Level the tiles belong to
        tile_range: Range used to request the tiles
        origin: (x, y) of the tile matrix top-left corner
        coverage_name: Name recorded on the result
        crs: Reference system recorded on the result, or None

    Returns:
        CompositeResult, or None if ``tiles`` is empty
    """
    builder = MosaicBuilder(level, tile_range, origin[0], origin[1])
    for tile, image in tiles:
        builder.add(tile, image)

    built = builder.build()
    if built is None:
        return None

    image, envelope = built
    return CompositeResult(
        image=image,
        envelope=envelope,
        crs=crs,
        coverage_name=coverage_name,
        level=level,
        tile_range=tile_range,
        tile_count=builder.tile_count,
    )
