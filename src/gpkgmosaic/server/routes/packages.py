from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse, Response

from gpkgmosaic.config import GEOPACKAGE_EXTENSIONS, MAX_OUTPUT_WIDTH
from gpkgmosaic.core.errors import InvalidCoverageError, MosaicError, TileDecodeError
from gpkgmosaic.core.reader import MosaicReader
from gpkgmosaic.core.types import Envelope, Pyramid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageRecord:
    package_id: str
    name: str
    path: Path
    reader: MosaicReader


def _package_id_for_path(path: Path) -> str:
    digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()
    return digest[:12]


def _iter_geopackages(data_dirs: Iterable[Path]) -> Iterable[Path]:
    for base_dir in data_dirs:
        if not base_dir.exists():
            logger.warning("Data dir does not exist: %s", base_dir)
            continue
        for path in sorted(base_dir.rglob("*")):
            if path.is_file() and path.suffix.lower() in GEOPACKAGE_EXTENSIONS:
                yield path


def build_package_index(data_dirs: Iterable[Path]) -> dict[str, PackageRecord]:
    packages: dict[str, PackageRecord] = {}

    for gpkg_path in _iter_geopackages(data_dirs):
        try:
            reader = MosaicReader(gpkg_path)
        except MosaicError as e:
            logger.warning("Skipping %s: %s", gpkg_path, e)
            continue

        package_id = _package_id_for_path(gpkg_path)
        packages[package_id] = PackageRecord(
            package_id=package_id,
            name=gpkg_path.stem,
            path=gpkg_path,
            reader=reader,
        )

    return packages


def _pyramid_summary(pyramid: Pyramid) -> dict:
    return {
        "name": pyramid.name,
        "identifier": pyramid.identifier,
        "description": pyramid.description,
        "srid": pyramid.srid,
        "bounds": list(pyramid.bounds),
        "gridRange": list(pyramid.grid_range),
        "highestResolution": list(pyramid.highest_resolution),
        "levels": [
            {
                "zoom": level.zoom_level,
                "matrixWidth": level.matrix_width,
                "matrixHeight": level.matrix_height,
                "tileWidth": level.tile_width,
                "tileHeight": level.tile_height,
                "pixelXSize": level.pixel_x_size,
                "pixelYSize": level.pixel_y_size,
                "hasTiles": level.has_tiles,
            }
            for level in pyramid.levels
        ],
    }


def _parse_bbox(bbox: str) -> Envelope:
    try:
        values = [float(part) for part in bbox.split(",")]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="bbox must be numbers") from exc
    if len(values) != 4:
        raise HTTPException(status_code=400, detail="bbox must have 4 values")
    envelope = Envelope(*values)
    if envelope.width <= 0 or envelope.height <= 0:
        raise HTTPException(status_code=400, detail="bbox must have a positive area")
    return envelope


def create_packages_router(packages: dict[str, PackageRecord]) -> APIRouter:
    router = APIRouter()

    def _get_record(package_id: str) -> PackageRecord:
        record = packages.get(package_id)
        if not record:
            raise HTTPException(status_code=404, detail="Package not found")
        return record

    @router.get("/api/packages")
    def list_packages() -> JSONResponse:
        response = []
        for record in packages.values():
            response.append(
                {
                    "id": record.package_id,
                    "name": record.name,
                    "coverages": record.reader.coverage_names,
                }
            )
        return JSONResponse(
            content=response,
            headers={"Cache-Control": "public, max-age=60"},
        )

    @router.get("/api/packages/{package_id}/coverages/{name}")
    def get_coverage(package_id: str, name: str) -> JSONResponse:
        record = _get_record(package_id)
        try:
            pyramid = record.reader.get_pyramid(name)
        except InvalidCoverageError as exc:
            raise HTTPException(status_code=404, detail="Coverage not found") from exc
        return JSONResponse(
            content=_pyramid_summary(pyramid),
            headers={"Cache-Control": "public, max-age=3600"},
        )

    @router.get("/api/packages/{package_id}/coverages/{name}/mosaic.png")
    def get_mosaic(
        package_id: str,
        name: str,
        bbox: str | None = None,
        width: int | None = Query(default=None),
    ) -> Response:
        record = _get_record(package_id)
        if width is not None and not 1 <= width <= MAX_OUTPUT_WIDTH:
            raise HTTPException(
                status_code=400, detail=f"width must be between 1 and {MAX_OUTPUT_WIDTH}"
            )
        envelope = _parse_bbox(bbox) if bbox is not None else None

        try:
            plan = record.reader.plan_read(envelope=envelope, width=width, coverage_name=name)
            if plan is not None:
                level, tile_range = plan
                output_width = len(tile_range.columns) * level.tile_width
                if output_width > MAX_OUTPUT_WIDTH:
                    raise HTTPException(
                        status_code=400,
                        detail=(
                            f"output would be {output_width} px wide, at most "
                            f"{MAX_OUTPUT_WIDTH} allowed; pass a smaller bbox or a width"
                        ),
                    )
            result = record.reader.read(envelope=envelope, width=width, coverage_name=name)
        except InvalidCoverageError as exc:
            raise HTTPException(status_code=404, detail="Coverage not found") from exc
        except TileDecodeError as exc:
            logger.error("Failed to read %s/%s: %s", record.name, name, exc)
            raise HTTPException(status_code=422, detail=str(exc)) from exc

        if result is None:
            return Response(status_code=204)

        return Response(
            content=result.to_png_bytes(),
            media_type="image/png",
            headers={
                "X-Envelope": ",".join(repr(value) for value in result.envelope),
                "X-Zoom-Level": str(result.level.zoom_level),
            },
        )

    return router
