"""Read-only access to the tile tables of a GeoPackage.

Plain Python class over ``sqlite3``. The catalog (tile tables, tile matrix
sets, tile matrices) is read once when the package is opened. Tiles are
streamed through a ``TileCursor`` that owns its own connection, so
concurrent reads never share SQLite state.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterator

from gpkgmosaic.config import DEFAULT_TILE_SIZE
from gpkgmosaic.core.errors import CatalogError, InvalidCoverageError
from gpkgmosaic.core.types import Envelope, Level, Pyramid, Tile

logger = logging.getLogger(__name__)

_REQUIRED_TABLES = ("gpkg_contents", "gpkg_tile_matrix_set", "gpkg_tile_matrix")

_PYRAMIDS_SQL = """
    SELECT c.table_name, c.identifier, c.description,
           s.srs_id, s.min_x, s.min_y, s.max_x, s.max_y
    FROM gpkg_contents c
    JOIN gpkg_tile_matrix_set s ON s.table_name = c.table_name
    WHERE c.data_type = 'tiles'
    ORDER BY c.rowid
"""

_LEVELS_SQL = """
    SELECT zoom_level, matrix_width, matrix_height, tile_width, tile_height,
           pixel_x_size, pixel_y_size
    FROM gpkg_tile_matrix
    WHERE table_name = ?
    ORDER BY zoom_level
"""


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class TileCursor:
    """Lazy, single-pass iterator over the tiles of one level window.

    Must be closed after use; use it as a context manager so the
    connection is released on every exit path.
    """

    def __init__(
        self, connection: sqlite3.Connection, sql: str, params: tuple, zoom_level: int
    ) -> None:
        self._connection = connection
        self._zoom_level = zoom_level
        self._closed = False
        try:
            self._cursor = connection.execute(sql, params)
        except sqlite3.Error:
            connection.close()
            self._closed = True
            raise

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[Tile]:
        return self

    def __next__(self) -> Tile:
        if self._closed:
            raise StopIteration
        row = self._cursor.fetchone()
        if row is None:
            raise StopIteration
        column, tile_row, data = row
        return Tile(
            zoom_level=self._zoom_level,
            column=column,
            row=tile_row,
            data=bytes(data) if data is not None else b"",
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._cursor.close()
        finally:
            self._connection.close()

    def __enter__(self) -> TileCursor:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()


class GeoPackage:
    """Catalog and tile access for a GeoPackage file.

    Args:
        path: Path to the ``.gpkg`` file

    Raises:
        FileNotFoundError: If the file does not exist
        CatalogError: If the file is not a GeoPackage with tile tables support
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._pyramids: dict[str, Pyramid] = {}
        self._lock = threading.Lock()
        self._open_cursors: list[TileCursor] = []
        self._closed = False

        if not self._path.exists():
            raise FileNotFoundError(f"GeoPackage not found: {self._path}")

        connection = self._connect()
        try:
            self._check_tables(connection)
            self._pyramids = self._load_catalog(connection)
        except sqlite3.DatabaseError as e:
            raise CatalogError(f"Cannot read GeoPackage {self._path}: {e}") from e
        finally:
            connection.close()

        logger.info(
            "Opened %s with %d tile pyramid(s)", self._path.name, len(self._pyramids)
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def path(self) -> Path:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        uri = f"{self._path.resolve().as_uri()}?mode=ro"
        return sqlite3.connect(uri, uri=True, check_same_thread=False)

    def _check_tables(self, connection: sqlite3.Connection) -> None:
        existing = {
            row[0]
            for row in connection.execute(
                "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
            )
        }
        missing = [name for name in _REQUIRED_TABLES if name not in existing]
        if missing:
            raise CatalogError(
                f"{self._path.name} is missing GeoPackage tables: {', '.join(missing)}"
            )

    def _load_catalog(self, connection: sqlite3.Connection) -> dict[str, Pyramid]:
        pyramids: dict[str, Pyramid] = {}
        for row in connection.execute(_PYRAMIDS_SQL).fetchall():
            name, identifier, description, srid, min_x, min_y, max_x, max_y = row
            levels = self._load_levels(connection, name)
            pyramids[name] = Pyramid(
                name=name,
                srid=int(srid),
                bounds=Envelope(min_x, min_y, max_x, max_y),
                levels=tuple(levels),
                identifier=identifier or "",
                description=description or "",
            )
        return pyramids

    def _load_levels(self, connection: sqlite3.Connection, name: str) -> list[Level]:
        stored_zooms = {
            row[0]
            for row in connection.execute(
                f"SELECT DISTINCT zoom_level FROM {_quote_identifier(name)}"
            )
        }
        levels = []
        for row in connection.execute(_LEVELS_SQL, (name,)):
            zoom, cols, rows, tile_w, tile_h, res_x, res_y = row
            levels.append(
                Level(
                    zoom_level=zoom,
                    matrix_width=cols,
                    matrix_height=rows,
                    tile_width=tile_w or DEFAULT_TILE_SIZE,
                    tile_height=tile_h or DEFAULT_TILE_SIZE,
                    pixel_x_size=float(res_x),
                    pixel_y_size=float(res_y),
                    has_tiles=zoom in stored_zooms,
                )
            )
        return levels

    def pyramids(self) -> list[Pyramid]:
        """Return the tile pyramids in catalog order."""
        return list(self._pyramids.values())

    def get_pyramid(self, name: str) -> Pyramid:
        pyramid = self._pyramids.get(name)
        if pyramid is None:
            raise InvalidCoverageError(name, list(self._pyramids))
        return pyramid

    def list_levels(self, name: str) -> list[Level]:
        """Return the levels of a tile table ordered by zoom."""
        return list(self.get_pyramid(name).levels)

    # ------------------------------------------------------------------
    # Tile access
    # ------------------------------------------------------------------

    def open_tile_cursor(
        self,
        name: str,
        zoom_level: int,
        left: int,
        right: int,
        top: int,
        bottom: int,
    ) -> TileCursor:
        """Open a cursor over the stored tiles inside an inclusive window.

        Args:
            name: Tile table name
            zoom_level: Zoom level to read
            left: First column
            right: Last column
            top: First row (northmost)
            bottom: Last row (southmost)

        Returns:
            TileCursor yielding ``Tile`` objects; close it after use
        """
        if self._closed:
            raise RuntimeError(f"GeoPackage {self._path.name} is closed")
        self.get_pyramid(name)

        sql = (
            f"SELECT tile_column, tile_row, tile_data FROM {_quote_identifier(name)} "
            "WHERE zoom_level = ? AND tile_column BETWEEN ? AND ? "
            "AND tile_row BETWEEN ? AND ?"
        )
        logger.debug(
            "Opening cursor on %s zoom %d columns %d-%d rows %d-%d",
            name, zoom_level, left, right, top, bottom,
        )
        cursor = TileCursor(
            self._connect(), sql, (zoom_level, left, right, top, bottom), zoom_level
        )
        with self._lock:
            self._open_cursors = [c for c in self._open_cursors if not c.closed]
            self._open_cursors.append(cursor)
        return cursor

    def close(self) -> None:
        """Close the package and any cursor still open."""
        with self._lock:
            cursors, self._open_cursors = self._open_cursors, []
            self._closed = True
        for cursor in cursors:
            cursor.close()

    def __enter__(self) -> GeoPackage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
