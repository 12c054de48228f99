"""Image decoding and debug-image writing."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from errors import CacheIOError, ImageDecodeError

# Formats Pillow rasterizes from vector data; they accept a render scale.
_VECTOR_FORMATS = {"EPS"}


def load_raster(image_path: Union[str, Path], *, density: int = 1) -> Image.Image:
    """
    Decode an image file into a Pillow image.

    Multi-frame files yield their first frame. Vector sources are rendered
    at ``density`` times their nominal resolution so downscaling later
    has enough pixels to anti-alias from.

    Args:
        image_path: Path to the image file
        density: Supersampling factor for vector sources

    Returns:
        Loaded Pillow image, detached from the file

    Raises:
        ImageDecodeError: if the file is missing or cannot be rasterized
    """
    path = Path(image_path)
    try:
        with Image.open(path) as img:
            if img.format in _VECTOR_FORMATS and density > 1:
                img.load(scale=density)
            else:
                img.load()
            return img.copy()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageDecodeError(f"Could not load image: {path} ({exc})") from exc


def save_image(image: Union[np.ndarray, Image.Image], path: Union[str, Path]) -> Path:
    """Write an array or Pillow image; the format follows the file extension."""
    path = Path(path)
    if isinstance(image, np.ndarray):
        image = Image.fromarray(np.ascontiguousarray(image))
    try:
        image.save(path)
    except (OSError, ValueError) as exc:
        raise CacheIOError(f"Cannot write image {path}: {exc}") from exc
    return path
