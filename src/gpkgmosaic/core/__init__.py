"""Zoom selection, tile range computation and mosaicking."""

from .mosaic import MosaicBuilder, compose_mosaic, to_rgba_array
from .reader import MosaicReader
from .tile_range import compute_tile_range, tile_envelope
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

__all__ = [
    "CompositeResult",
    "Envelope",
    "Level",
    "MosaicBuilder",
    "MosaicReader",
    "Pyramid",
    "RequestWindow",
    "Tile",
    "TileRange",
    "compose_mosaic",
    "compute_tile_range",
    "select_level",
    "tile_envelope",
    "to_rgba_array",
]
