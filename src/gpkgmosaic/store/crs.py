"""Reference system resolution with pyproj."""

from __future__ import annotations

import logging

from pyproj import CRS
from pyproj.exceptions import CRSError

from gpkgmosaic.config import CRS_AUTHORITY

logger = logging.getLogger(__name__)


def resolve_crs(srid: int, authority: str = CRS_AUTHORITY) -> CRS | None:
    """Resolve a pyramid srid to a pyproj ``CRS``.

    A missing or unknown reference system is not fatal: the mosaic math
    works in pyramid units either way, so failures are logged and ``None``
    is returned.

    Args:
        srid: Spatial reference id declared by the tile matrix set
        authority: Authority name the srid belongs to

    Returns:
        pyproj.CRS, or None if it cannot be resolved
    """
    try:
        return CRS.from_authority(authority, str(srid))
    except CRSError as e:
        logger.warning("Cannot resolve reference system %s:%s: %s", authority, srid, e)
        return None
