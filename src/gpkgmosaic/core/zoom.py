"""Zoom level selection."""

from __future__ import annotations

import logging

from .types import Level, Pyramid, RequestWindow

logger = logging.getLogger(__name__)


def select_level(pyramid: Pyramid, request: RequestWindow | None = None) -> Level | None:
    """Pick the pyramid level to read from.

    With an envelope and an output width, the level whose X pixel size is
    nearest to ``envelope.width / width`` wins (the coarser level on ties).
    Without them, the finest level holding tiles is used, like choosing
    the full-resolution image of a GeoTIFF when no overview is hinted.

    Args:
        pyramid: Pyramid to choose from
        request: Optional requested area and size

    Returns:
        The chosen Level, or None if no level holds any tile
    """
    best: Level | None = None
    if request is not None and request.has_resolution:
        resolution = request.horizontal_resolution
        best = pyramid.nearest_level(resolution)
        if best is not None:
            logger.debug(
                "Requested resolution %g on %s -> zoom %d (pixel size %g)",
                resolution, pyramid.name, best.zoom_level, best.pixel_x_size,
            )

    if best is None:
        best = pyramid.finest_level()
        if best is not None:
            logger.debug(
                "Using finest level of %s: zoom %d (pixel size %g)",
                pyramid.name, best.zoom_level, best.pixel_x_size,
            )

    if best is None:
        logger.debug("No level of %s holds tiles", pyramid.name)
    return best
