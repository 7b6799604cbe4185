"""Fixtures for the HTTP service tests."""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from gpkgmosaic.server.config import ServerConfig
from gpkgmosaic.server.main import create_app


@pytest.fixture
def data_dir(
    temp_dir: Path, grid_gpkg: Path, multi_level_gpkg: Path, gpkg_factory, grid_table: dict
) -> Path:
    """Directory holding good, corrupt-tile and unreadable GeoPackages."""
    tiles = dict(grid_table["tiles"])
    tiles[(0, 0, 0)] = b"garbage"
    nested = temp_dir / "nested"
    nested.mkdir()
    gpkg_factory([dict(grid_table, tiles=tiles)], "nested/corrupt.gpkg")
    (temp_dir / "broken.gpkg").write_bytes(b"not sqlite" * 128)
    (temp_dir / "notes.txt").write_text("ignored")
    return temp_dir


@pytest.fixture
def client(data_dir: Path) -> Generator[TestClient, None, None]:
    app = create_app(ServerConfig(data_dirs=[data_dir]))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def package_ids(client: TestClient) -> dict[str, str]:
    """Map package name to id."""
    response = client.get("/api/packages")
    return {package["name"]: package["id"] for package in response.json()}
