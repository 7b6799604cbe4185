"""Exception types raised by gpkgmosaic.

An empty read is not an error: readers return ``None`` when no tile covers
the request.
"""

from __future__ import annotations


class MosaicError(Exception):
    """Base class for all gpkgmosaic errors."""


class InvalidCoverageError(MosaicError, ValueError):
    """The requested coverage (tile table) is not in the package catalog."""

    def __init__(self, name: str, available: list[str] | None = None) -> None:
        self.name = name
        self.available = list(available or [])
        message = f"The specified coverage name {name!r} is not supported"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class CatalogError(MosaicError, RuntimeError):
    """The package is missing required tables or holds no tile pyramids."""


class TileDecodeError(MosaicError, RuntimeError):
    """A tile's bytes could not be decoded into an image."""

    def __init__(
        self,
        message: str,
        zoom_level: int | None = None,
        column: int | None = None,
        row: int | None = None,
    ) -> None:
        self.zoom_level = zoom_level
        self.column = column
        self.row = row
        if zoom_level is not None:
            message = f"{message} (zoom {zoom_level}, column {column}, row {row})"
        super().__init__(message)
