"""Collaborators of the mosaic reader: tile store, decoder, reference systems."""

from .crs import resolve_crs
from .decode import decode_tile
from .geopackage import GeoPackage, TileCursor

__all__ = [
    "GeoPackage",
    "TileCursor",
    "decode_tile",
    "resolve_crs",
]
