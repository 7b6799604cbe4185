"""Tile decoding with Pillow."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

from gpkgmosaic.core.errors import TileDecodeError


def decode_tile(data: bytes) -> Image.Image:
    """Decode raw tile bytes (PNG, JPEG, WebP, ...) into a Pillow image.

    The colour model is left untouched; normalisation happens in the
    compositor.

    Raises:
        TileDecodeError: If the bytes are empty or not a readable image
    """
    if not data:
        raise TileDecodeError("Tile has no data")
    try:
        image = Image.open(io.BytesIO(data))
        # Force the decode now: Image.open is lazy and errors would surface later
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise TileDecodeError(f"Cannot decode tile: {e}") from e
    return image
