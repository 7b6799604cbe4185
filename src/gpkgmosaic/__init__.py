"""gpkgmosaic - Mosaic reader for GeoPackage raster tile pyramids."""

__version__ = "0.1.0"

from gpkgmosaic.core.errors import (
    CatalogError,
    InvalidCoverageError,
    MosaicError,
    TileDecodeError,
)
from gpkgmosaic.core.reader import MosaicReader
from gpkgmosaic.core.types import CompositeResult, Envelope, Level, Pyramid

__all__ = [
    "CatalogError",
    "CompositeResult",
    "Envelope",
    "InvalidCoverageError",
    "Level",
    "MosaicError",
    "MosaicReader",
    "Pyramid",
    "TileDecodeError",
]
