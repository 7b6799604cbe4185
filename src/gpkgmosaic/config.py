"""Centralized configuration for gpkgmosaic.

All tunable parameters are defined here with sensible defaults.
Values can be overridden via environment variables.

Environment Variables:
    GPKGMOSAIC_DECODE_WORKERS: Threads used to decode tiles of one read (default: 1)
    GPKGMOSAIC_MAX_OUTPUT_WIDTH: Largest output width the HTTP service renders (default: 8192)
    GPKGMOSAIC_CRS_AUTHORITY: Authority used to resolve pyramid srids (default: EPSG)
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _get_env_int(name: str, default: int) -> int:
    """Get an integer from environment variable with fallback."""
    value = os.environ.get(name)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            logger.warning(
                "Invalid integer for %s: %r, using default %d", name, value, default
            )
    return default


def _get_env_str(name: str, default: str) -> str:
    """Get a string from environment variable with fallback."""
    return os.environ.get(name, default)


# =============================================================================
# Tile Defaults
# =============================================================================

#: Tile size in pixels used when a tile matrix does not declare one
DEFAULT_TILE_SIZE: int = 256

#: Canvas value outside every tile footprint (transparent black, RGBA)
BACKGROUND_RGBA: tuple[int, int, int, int] = (0, 0, 0, 0)

#: File extensions recognised as GeoPackages
GEOPACKAGE_EXTENSIONS: frozenset[str] = frozenset({".gpkg"})


# =============================================================================
# Read Configuration
# =============================================================================

#: Threads used to decode the tiles of a single read (1 = decode inline)
DECODE_WORKERS: int = _get_env_int("GPKGMOSAIC_DECODE_WORKERS", 1)

#: Largest output width, in pixels, the HTTP service accepts
MAX_OUTPUT_WIDTH: int = _get_env_int("GPKGMOSAIC_MAX_OUTPUT_WIDTH", 8192)

#: Authority used to turn a pyramid srid into a reference system
CRS_AUTHORITY: str = _get_env_str("GPKGMOSAIC_CRS_AUTHORITY", "EPSG")


# =============================================================================
# Validation
# =============================================================================


def _validate_config() -> None:
    """Validate configuration values and log warnings for out-of-range settings."""
    global DECODE_WORKERS, MAX_OUTPUT_WIDTH

    if DECODE_WORKERS < 1:
        logger.warning("DECODE_WORKERS=%d is too low, clamping to 1", DECODE_WORKERS)
        DECODE_WORKERS = 1

    if MAX_OUTPUT_WIDTH < 1:
        logger.warning(
            "MAX_OUTPUT_WIDTH=%d is too low, clamping to 1", MAX_OUTPUT_WIDTH
        )
        MAX_OUTPUT_WIDTH = 1


_validate_config()
