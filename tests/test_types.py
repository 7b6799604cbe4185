"""Tests for the core data types."""

from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from gpkgmosaic.core.types import (
    CompositeResult,
    Envelope,
    Level,
    Pyramid,
    RequestWindow,
    TileRange,
)


def _pyramid(*levels: Level) -> Pyramid:
    return Pyramid(name="t", srid=3857, bounds=Envelope(0, 0, 64, 64), levels=levels)


class TestEnvelope:
    def test_size(self) -> None:
        env = Envelope(10, 20, 40, 100)
        assert env.width == 30
        assert env.height == 80

    def test_union(self) -> None:
        a = Envelope(0, 0, 10, 10)
        b = Envelope(5, -5, 20, 8)
        assert a.union(b) == Envelope(0, -5, 20, 10)

    def test_touching_envelopes_do_not_intersect(self) -> None:
        a = Envelope(0, 0, 10, 10)
        b = Envelope(10, 0, 20, 10)
        assert a.intersection_area(b) == 0.0
        assert not a.intersects(b)

    def test_overlap_area(self) -> None:
        a = Envelope(0, 0, 10, 10)
        b = Envelope(5, 5, 15, 15)
        assert a.intersection_area(b) == 25.0
        assert a.intersects(b)


class TestTileRange:
    def test_inclusive_bounds(self) -> None:
        tile_range = TileRange(left=2, top=3, right=4, bottom=3)
        assert list(tile_range.columns) == [2, 3, 4]
        assert list(tile_range.rows) == [3]
        assert tile_range.contains(4, 3)
        assert not tile_range.contains(5, 3)
        assert not tile_range.is_empty

    def test_empty(self) -> None:
        assert TileRange(3, 0, 2, 0).is_empty


class TestLevel:
    def test_spans(self) -> None:
        level = Level(2, 4, 3, 256, 128, 0.5, 2.0)
        assert level.tile_span_x == 128.0
        assert level.tile_span_y == 256.0
        assert level.pixel_width == 1024
        assert level.pixel_height == 384


class TestPyramid:
    def test_origin_is_top_left(self) -> None:
        pyramid = Pyramid("t", 4326, Envelope(-180, -90, 180, 90))
        assert pyramid.origin == (-180, 90)

    def test_highest_resolution_uses_last_level(self) -> None:
        """The last declared level counts even when it holds no tile."""
        pyramid = _pyramid(
            Level(0, 1, 1, 16, 16, 4.0, 4.0),
            Level(1, 2, 2, 16, 16, 2.0, 2.0, has_tiles=False),
        )
        assert pyramid.highest_resolution == (2.0, 2.0)
        assert pyramid.grid_range == (32, 32)

    def test_get_level(self) -> None:
        pyramid = _pyramid(Level(0, 1, 1, 16, 16, 4.0, 4.0), Level(3, 8, 8, 16, 16, 0.5, 0.5))
        assert pyramid.get_level(3).pixel_x_size == 0.5
        with pytest.raises(ValueError):
            pyramid.get_level(1)

    def test_finest_level_skips_empty(self) -> None:
        pyramid = _pyramid(
            Level(0, 1, 1, 16, 16, 4.0, 4.0),
            Level(1, 2, 2, 16, 16, 2.0, 2.0),
            Level(2, 4, 4, 16, 16, 1.0, 1.0, has_tiles=False),
        )
        assert pyramid.finest_level().zoom_level == 1

    def test_nearest_level_tie_prefers_first(self) -> None:
        pyramid = _pyramid(Level(0, 1, 1, 16, 16, 4.0, 4.0), Level(1, 2, 2, 16, 16, 2.0, 2.0))
        assert pyramid.nearest_level(3.0).zoom_level == 0

    def test_no_tiles(self) -> None:
        pyramid = _pyramid(Level(0, 1, 1, 16, 16, 4.0, 4.0, has_tiles=False))
        assert pyramid.finest_level() is None
        assert pyramid.nearest_level(4.0) is None


class TestRequestWindow:
    def test_resolution(self) -> None:
        request = RequestWindow(Envelope(0, 0, 100, 50), width=25)
        assert request.has_resolution
        assert request.horizontal_resolution == 4.0

    def test_envelope_without_width(self) -> None:
        request = RequestWindow(Envelope(0, 0, 100, 50))
        assert not request.has_resolution
        with pytest.raises(ValueError):
            request.horizontal_resolution

    def test_non_positive_width(self) -> None:
        with pytest.raises(ValueError, match="positive"):
            RequestWindow(Envelope(0, 0, 100, 50), width=0).horizontal_resolution


class TestCompositeResult:
    def _result(self, image: Image.Image) -> CompositeResult:
        level = Level(0, 1, 1, image.width, image.height, 1.0, 1.0)
        return CompositeResult(
            image=image,
            envelope=Envelope(0, 0, image.width, image.height),
            crs=None,
            coverage_name="t",
            level=level,
            tile_range=TileRange(0, 0, 0, 0),
            tile_count=1,
        )

    def test_size_and_array(self) -> None:
        result = self._result(Image.new("RGB", (6, 4), (1, 2, 3)))
        assert (result.width, result.height) == (6, 4)
        array = result.to_array()
        assert array.shape == (4, 6, 3)
        assert np.all(array == [1, 2, 3])

    def test_png_keeps_palette(self) -> None:
        result = self._result(Image.new("P", (4, 4), 3))
        decoded = Image.open(io.BytesIO(result.to_png_bytes()))
        assert decoded.mode == "P"

    def test_png_converts_unsupported_mode(self) -> None:
        result = self._result(Image.new("CMYK", (4, 4), (0, 0, 0, 0)))
        decoded = Image.open(io.BytesIO(result.to_png_bytes()))
        assert decoded.mode == "RGBA"
