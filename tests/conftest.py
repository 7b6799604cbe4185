"""Test fixtures for gpkgmosaic tests."""

from __future__ import annotations

import io
import sqlite3
import tempfile
from pathlib import Path
from typing import Callable, Generator

import numpy as np
import pytest
from PIL import Image

from gpkgmosaic.core.types import Envelope, Level, Pyramid

# (zoom, matrix_width, matrix_height, tile_width, tile_height, pixel_x, pixel_y)
LevelRow = tuple[int, int, int, int, int, float, float]

_CORE_SCHEMA = """
CREATE TABLE gpkg_contents (
    table_name TEXT NOT NULL PRIMARY KEY,
    data_type TEXT NOT NULL,
    identifier TEXT UNIQUE,
    description TEXT DEFAULT '',
    last_change DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
    min_x DOUBLE, min_y DOUBLE, max_x DOUBLE, max_y DOUBLE,
    srs_id INTEGER
);
CREATE TABLE gpkg_tile_matrix_set (
    table_name TEXT NOT NULL PRIMARY KEY,
    srs_id INTEGER NOT NULL,
    min_x DOUBLE NOT NULL, min_y DOUBLE NOT NULL,
    max_x DOUBLE NOT NULL, max_y DOUBLE NOT NULL
);
CREATE TABLE gpkg_tile_matrix (
    table_name TEXT NOT NULL,
    zoom_level INTEGER NOT NULL,
    matrix_width INTEGER NOT NULL,
    matrix_height INTEGER NOT NULL,
    tile_width INTEGER NOT NULL,
    tile_height INTEGER NOT NULL,
    pixel_x_size DOUBLE NOT NULL,
    pixel_y_size DOUBLE NOT NULL,
    CONSTRAINT pk_ttm PRIMARY KEY (table_name, zoom_level)
);
"""


def encode_image(image: Image.Image, fmt: str = "PNG") -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


def solid_tile(color, size: int = 10, mode: str = "RGB") -> Image.Image:
    return Image.new(mode, (size, size), color)


def tile_color(column: int, row: int) -> tuple[int, int, int]:
    """Distinct RGB colour per tile position."""
    return (column * 20 + 5, row * 20 + 5, 100)


def write_geopackage(
    path: Path,
    pyramids: list[dict],
) -> Path:
    """Write a minimal GeoPackage holding the given tile pyramids.

    Each pyramid dict has ``name``, ``srid``, ``bounds`` (min_x, min_y,
    max_x, max_y), ``levels`` (LevelRow tuples) and ``tiles`` mapping
    (zoom, column, row) to encoded bytes.
    """
    connection = sqlite3.connect(path)
    try:
        connection.executescript(_CORE_SCHEMA)
        for table in pyramids:
            name = table["name"]
            min_x, min_y, max_x, max_y = table["bounds"]
            connection.execute(
                f'CREATE TABLE "{name}" ('
                "id INTEGER PRIMARY KEY AUTOINCREMENT, "
                "zoom_level INTEGER NOT NULL, tile_column INTEGER NOT NULL, "
                "tile_row INTEGER NOT NULL, tile_data BLOB NOT NULL, "
                "UNIQUE (zoom_level, tile_column, tile_row))"
            )
            connection.execute(
                "INSERT INTO gpkg_contents (table_name, data_type, identifier, description, "
                "min_x, min_y, max_x, max_y, srs_id) VALUES (?, 'tiles', ?, ?, ?, ?, ?, ?, ?)",
                (name, table.get("identifier", name), table.get("description", ""),
                 min_x, min_y, max_x, max_y, table["srid"]),
            )
            connection.execute(
                "INSERT INTO gpkg_tile_matrix_set VALUES (?, ?, ?, ?, ?, ?)",
                (name, table["srid"], min_x, min_y, max_x, max_y),
            )
            for level in table["levels"]:
                connection.execute(
                    "INSERT INTO gpkg_tile_matrix VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (name, *level),
                )
            for (zoom, column, row), data in table.get("tiles", {}).items():
                connection.execute(
                    f'INSERT INTO "{name}" (zoom_level, tile_column, tile_row, tile_data) '
                    "VALUES (?, ?, ?, ?)",
                    (zoom, column, row, data),
                )
        connection.commit()
    finally:
        connection.close()
    return path


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that's cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def gpkg_factory(temp_dir: Path) -> Callable[..., Path]:
    """Return a function writing a GeoPackage into the temp directory."""

    def _factory(pyramids: list[dict], filename: str = "test.gpkg") -> Path:
        return write_geopackage(temp_dir / filename, pyramids)

    return _factory


@pytest.fixture
def grid_table() -> dict:
    """Envelope (0,0)-(100,100), one level of 10x10 tiles of 10x10 px at 1.0."""
    tiles = {
        (0, column, row): encode_image(solid_tile(tile_color(column, row)))
        for row in range(10)
        for column in range(10)
    }
    return {
        "name": "grid",
        "srid": 3857,
        "bounds": (0.0, 0.0, 100.0, 100.0),
        "levels": [(0, 10, 10, 10, 10, 1.0, 1.0)],
        "tiles": tiles,
    }


@pytest.fixture
def grid_gpkg(gpkg_factory, grid_table: dict) -> Path:
    return gpkg_factory([grid_table], "grid.gpkg")


@pytest.fixture
def multi_level_gpkg(gpkg_factory) -> Path:
    """Envelope (0,0)-(64,64); zooms 0-2 filled, zoom 3 declared but empty."""
    levels = [
        (0, 1, 1, 16, 16, 4.0, 4.0),
        (1, 2, 2, 16, 16, 2.0, 2.0),
        (2, 4, 4, 16, 16, 1.0, 1.0),
        (3, 8, 8, 16, 16, 0.5, 0.5),
    ]
    tiles = {}
    for zoom, cols, rows, *_ in levels[:3]:
        for row in range(rows):
            for column in range(cols):
                color = (zoom * 80, column * 40, row * 40)
                tiles[(zoom, column, row)] = encode_image(solid_tile(color, size=16))
    table = {
        "name": "pyramid",
        "srid": 4326,
        "bounds": (0.0, 0.0, 64.0, 64.0),
        "levels": levels,
        "tiles": tiles,
        "description": "four level test pyramid",
    }
    return gpkg_factory([table], "multi.gpkg")


@pytest.fixture
def heterogeneous_tiles() -> dict[tuple[int, int], Image.Image]:
    """Four 8x8 tiles with different colour models, keyed by (column, row)."""
    palette = Image.new("P", (8, 8), 1)
    palette.putpalette([0, 0, 0, 255, 0, 0, 0, 255, 0] + [0] * (256 * 3 - 9))

    rgba = np.zeros((8, 8, 4), dtype=np.uint8)
    rgba[:, :4] = [0, 0, 255, 255]  # left half opaque blue, right half transparent

    grey = Image.new("L", (8, 8), 128)
    rgb = Image.new("RGB", (8, 8), (10, 200, 30))

    return {
        (0, 0): palette,
        (1, 0): rgb,
        (0, 1): Image.fromarray(rgba),
        (1, 1): grey,
    }


@pytest.fixture
def heterogeneous_gpkg(gpkg_factory, heterogeneous_tiles) -> Path:
    """2x2 tiles mixing paletted, RGB, RGBA and grey PNGs."""
    table = {
        "name": "mixed",
        "srid": 3857,
        "bounds": (0.0, 0.0, 16.0, 16.0),
        "levels": [(0, 2, 2, 8, 8, 1.0, 1.0)],
        "tiles": {
            (0, column, row): encode_image(image)
            for (column, row), image in heterogeneous_tiles.items()
        },
    }
    return gpkg_factory([table], "mixed.gpkg")


@pytest.fixture
def grid_pyramid() -> Pyramid:
    """In-memory model of the (0,0)-(100,100) single level pyramid."""
    return Pyramid(
        name="grid",
        srid=3857,
        bounds=Envelope(0.0, 0.0, 100.0, 100.0),
        levels=(Level(0, 10, 10, 10, 10, 1.0, 1.0),),
    )
