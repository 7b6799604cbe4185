"""Shared type definitions for the gpkgmosaic core module."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, NamedTuple

import numpy as np

if TYPE_CHECKING:
    from PIL import Image
    from pyproj import CRS

_PNG_MODES = frozenset({"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"})


class Envelope(NamedTuple):
    """Axis-aligned bounding rectangle in reference-system units.

    Attributes:
        min_x: West edge
        min_y: South edge
        max_x: East edge
        max_y: North edge
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def union(self, other: Envelope) -> Envelope:
        """Return the smallest envelope containing both envelopes."""
        return Envelope(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def intersection_area(self, other: Envelope) -> float:
        """Area shared by both envelopes (0.0 when they only touch)."""
        dx = min(self.max_x, other.max_x) - max(self.min_x, other.min_x)
        dy = min(self.max_y, other.max_y) - max(self.min_y, other.min_y)
        if dx <= 0 or dy <= 0:
            return 0.0
        return dx * dy

    def intersects(self, other: Envelope) -> bool:
        """True if the envelopes overlap by a non-zero area."""
        return self.intersection_area(other) > 0


class TileRange(NamedTuple):
    """Inclusive rectangle of tile indices within one level.

    Rows grow southward from the top of the tile matrix.
    """

    left: int
    top: int
    right: int
    bottom: int

    @property
    def columns(self) -> range:
        return range(self.left, self.right + 1)

    @property
    def rows(self) -> range:
        return range(self.top, self.bottom + 1)

    @property
    def is_empty(self) -> bool:
        return self.right < self.left or self.bottom < self.top

    def contains(self, column: int, row: int) -> bool:
        return self.left <= column <= self.right and self.top <= row <= self.bottom


@dataclass(frozen=True)
class Level:
    """One zoom step of a tile pyramid.

    Attributes:
        zoom_level: Zoom index (higher = finer)
        matrix_width: Number of tile columns
        matrix_height: Number of tile rows
        tile_width: Tile width in pixels
        tile_height: Tile height in pixels
        pixel_x_size: Ground units per pixel along X
        pixel_y_size: Ground units per pixel along Y
        has_tiles: Whether at least one tile is stored for this level
    """

    zoom_level: int
    matrix_width: int
    matrix_height: int
    tile_width: int
    tile_height: int
    pixel_x_size: float
    pixel_y_size: float
    has_tiles: bool = True

    @property
    def tile_span_x(self) -> float:
        """Ground width covered by one tile."""
        return self.pixel_x_size * self.tile_width

    @property
    def tile_span_y(self) -> float:
        """Ground height covered by one tile."""
        return self.pixel_y_size * self.tile_height

    @property
    def pixel_width(self) -> int:
        return self.matrix_width * self.tile_width

    @property
    def pixel_height(self) -> int:
        return self.matrix_height * self.tile_height


@dataclass(frozen=True)
class Pyramid:
    """A tiled raster dataset: one GeoPackage tile table.

    Every level tiles the same ``bounds``. ``levels`` is ordered by
    ascending zoom, so the last entry is the finest resolution.
    """

    name: str
    srid: int
    bounds: Envelope
    levels: tuple[Level, ...] = ()
    identifier: str = ""
    description: str = ""

    @property
    def origin(self) -> tuple[float, float]:
        """Top-left corner of the tile matrix (tile 0, 0)."""
        return (self.bounds.min_x, self.bounds.max_y)

    @property
    def levels_with_tiles(self) -> list[Level]:
        return [level for level in self.levels if level.has_tiles]

    @property
    def highest_resolution(self) -> tuple[float, float]:
        level = self.levels[-1]
        return (level.pixel_x_size, level.pixel_y_size)

    @property
    def grid_range(self) -> tuple[int, int]:
        level = self.levels[-1]
        return (level.pixel_width, level.pixel_height)

    def get_level(self, zoom_level: int) -> Level:
        """Return the ``Level`` with the given zoom index."""
        for level in self.levels:
            if level.zoom_level == zoom_level:
                return level
        raise ValueError(f"Unknown zoom level: {zoom_level}")

    def finest_level(self) -> Level | None:
        """Level with the smallest X pixel size among levels holding tiles."""
        best: Level | None = None
        for level in self.levels_with_tiles:
            if best is None or level.pixel_x_size < best.pixel_x_size:
                best = level
        return best

    def nearest_level(self, resolution: float) -> Level | None:
        """Level whose X pixel size is closest to ``resolution``.

        Only levels holding tiles are considered. On ties the first level in
        ascending zoom order wins.
        """
        best: Level | None = None
        difference = float("inf")
        for level in self.levels_with_tiles:
            new_difference = abs(resolution - level.pixel_x_size)
            if new_difference < difference:
                difference = new_difference
                best = level
        return best


@dataclass(frozen=True)
class Tile:
    """A stored tile and its undecoded payload."""

    zoom_level: int
    column: int
    row: int
    data: bytes = field(repr=False, default=b"")


@dataclass(frozen=True)
class RequestWindow:
    """Area and output size requested by a caller.

    An empty window means "whole pyramid at native resolution".
    """

    envelope: Envelope | None = None
    width: int | None = None
    height: int | None = None

    @property
    def has_resolution(self) -> bool:
        return self.envelope is not None and self.width is not None

    @property
    def horizontal_resolution(self) -> float:
        """Ground units per output pixel along X."""
        if self.envelope is None or self.width is None:
            raise ValueError("Request has no envelope and width")
        if self.width <= 0:
            raise ValueError(f"Requested width must be positive, got {self.width}")
        return self.envelope.width / self.width


@dataclass
class CompositeResult:
    """The raster produced by a read and the envelope it covers.

    ``envelope`` is snapped to whole tiles and may be larger than the
    request. ``crs`` is ``None`` when the pyramid srid could not be resolved.
    """

    image: Image.Image
    envelope: Envelope
    crs: CRS | None
    coverage_name: str
    level: Level
    tile_range: TileRange
    tile_count: int

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def to_array(self) -> np.ndarray:
        """Return the image as a numpy array (H, W[, bands])."""
        return np.asarray(self.image)

    def to_png_bytes(self) -> bytes:
        """Encode the image as PNG, converting modes PNG cannot hold to RGBA."""
        image = self.image
        if image.mode not in _PNG_MODES:
            image = image.convert("RGBA")
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()
