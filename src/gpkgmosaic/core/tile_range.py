"""Ground envelope to tile-index range conversion.

Tile (0, 0) is the upper-left tile of the matrix at every zoom level, so the
row axis runs from north to south.
"""

from __future__ import annotations

import math

from .types import Envelope, Level, TileRange


def compute_tile_range(
    envelope: Envelope,
    level: Level,
    origin_x: float,
    origin_y: float,
    trim_edges: bool = True,
) -> TileRange:
    """Return the inclusive tile range of ``level`` covering ``envelope``.

    Edges are floored/ceiled, never rounded: rounding can drop a tile that
    contributes a fraction of a pixel row or column.

    The trim compares with ``>=``/``<=`` and ``MosaicReader`` applies it to
    both whole-pyramid and explicit-envelope reads. GeoTools' GeoPackage
    mosaic reader differs: it trims requests with a strict comparison and
    whole-pyramid reads not at all, so when an east or south edge falls
    exactly on a tile boundary it also fetches the zero-overlap tile beyond
    it. Here that tile is left out; pass ``trim_edges=False`` for the
    untrimmed ceiling range.

    Args:
        envelope: Area to cover, in pyramid units
        level: Level whose tile spans are used
        origin_x: West edge of the tile matrix (pyramid min-x)
        origin_y: North edge of the tile matrix (pyramid max-y)
        trim_edges: Drop the east/south tile added by the ceiling when it
            has no overlap with the envelope

    Returns:
        TileRange (left, top, right, bottom)
    """
    span_x = level.tile_span_x
    span_y = level.tile_span_y

    left = math.floor((envelope.min_x - origin_x) / span_x)
    top = math.floor((origin_y - envelope.max_y) / span_y)
    right = math.ceil((envelope.max_x - origin_x) / span_x)
    bottom = math.ceil((origin_y - envelope.min_y) / span_y)

    if trim_edges:
        # west edge of the last column at or past the east edge of the envelope
        if right > left and origin_x + right * span_x >= envelope.max_x:
            right -= 1
        # north edge of the last row at or past the south edge of the envelope
        if bottom > top and origin_y - bottom * span_y <= envelope.min_y:
            bottom -= 1

    return TileRange(left, top, right, bottom)


def tile_envelope(
    level: Level, column: int, row: int, origin_x: float, origin_y: float
) -> Envelope:
    """Ground footprint of one tile."""
    min_x = origin_x + column * level.tile_span_x
    max_y = origin_y - row * level.tile_span_y
    return Envelope(min_x, max_y - level.tile_span_y, min_x + level.tile_span_x, max_y)
