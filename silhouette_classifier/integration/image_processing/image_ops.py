"""Raster primitives for silhouette normalization and debug overlays.

Colour images are ``(H, W, 3)`` RGB or ``(H, W, 4)`` RGBA uint8 arrays;
masks and silhouettes are ``(H, W)`` uint8 arrays.
"""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, ImageFilter

_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}
_WIDE_MODES = {"I", "F", "I;16", "I;16B", "I;16L", "I;16N"}


def _srgb_to_linear_lut() -> np.ndarray:
    c = np.arange(256, dtype=np.float64) / 255.0
    linear = np.where(c <= 0.04045, c / 12.92, ((c + 0.055) / 1.055) ** 2.4)
    return np.clip(np.round(linear * 255.0), 0, 255).astype(np.uint8)


_LINEAR_LUT = _srgb_to_linear_lut()


def to_rgba(image: Image.Image) -> np.ndarray:
    """Convert any Pillow image to an 8-bit RGBA array.

    Images without alpha get a fully opaque channel. 16-bit and float
    images are rescaled to 8 bits rather than clipped.
    """
    if image.mode in _WIDE_MODES:
        values = np.asarray(image, dtype=np.float64)
        peak = float(values.max()) if values.size else 0.0
        if peak > 0:
            values = values * (255.0 / peak)
        image = Image.fromarray(np.clip(values, 0, 255).astype(np.uint8))
    if image.mode == "RGBA":
        return np.array(image, dtype=np.uint8)
    if image.mode in _ALPHA_MODES or "transparency" in image.info:
        return np.array(image.convert("RGBA"), dtype=np.uint8)
    rgb = np.array(image.convert("RGB"), dtype=np.uint8)
    alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return np.concatenate([rgb, alpha], axis=2)


def linearize_srgb(rgba: np.ndarray) -> np.ndarray:
    """Map sRGB-encoded colour channels to linear RGB; alpha is untouched."""
    out = rgba.copy()
    out[..., :3] = _LINEAR_LUT[rgba[..., :3]]
    return out


def fit_within(width: int, height: int, box: int) -> Tuple[int, int]:
    """Largest (w, h) with the same aspect ratio that fits in a box x box square."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {width}x{height}")
    scale = min(box / float(width), box / float(height))
    new_w = min(box, max(1, int(round(width * scale))))
    new_h = min(box, max(1, int(round(height * scale))))
    return new_w, new_h


def resize_with_blur(rgba: np.ndarray, size: Tuple[int, int], blur: float) -> np.ndarray:
    """Resize to ``size`` (w, h) and soften with a Gaussian of radius ``blur``.

    Filtering runs on premultiplied alpha so transparent pixels don't bleed
    their colour into the subject edge.
    """
    image = Image.fromarray(rgba)
    if image.size != tuple(size):
        image = image.resize(tuple(size), Image.Resampling.LANCZOS)
    if blur > 0:
        image = image.convert("RGBa").filter(ImageFilter.GaussianBlur(blur)).convert("RGBA")
    return np.array(image, dtype=np.uint8)


def transparency_ratio(rgba: np.ndarray) -> float:
    """Fraction of pixels that are more transparent than opaque."""
    histogram = np.bincount(rgba[..., 3].ravel(), minlength=256)
    total = int(histogram.sum())
    if total == 0:
        return 0.0
    return float(histogram[:128].sum()) / float(total)


def clip_to_alpha(rgba: np.ndarray) -> np.ndarray:
    """Drop colour data wherever the pixel is fully transparent."""
    out = rgba.copy()
    out[out[..., 3] == 0, :3] = 0
    return out


def flood_fill_mask(rgb: np.ndarray, fuzz: float) -> np.ndarray:
    """
    Flood-fill from the top-left pixel, keyed on that pixel's colour.

    A one-pixel matte border in the key colour is added first so the fill
    can reach every stretch of background touching the image edge.

    Args:
        rgb: (H, W, 3) uint8 image
        fuzz: Colour tolerance as a fraction of the channel range

    Returns:
        Boolean (H, W) mask, True where the fill reached
    """
    rgb = np.ascontiguousarray(rgb[..., :3], dtype=np.uint8)
    height, width = rgb.shape[:2]
    key = tuple(int(v) for v in rgb[0, 0])
    bordered = cv2.copyMakeBorder(rgb, 1, 1, 1, 1, cv2.BORDER_CONSTANT, value=key)

    tolerance = int(round(fuzz * 255.0))
    diff = (tolerance, tolerance, tolerance)
    mask = np.zeros((height + 4, width + 4), dtype=np.uint8)
    flags = 4 | cv2.FLOODFILL_FIXED_RANGE | cv2.FLOODFILL_MASK_ONLY | (255 << 8)
    cv2.floodFill(bordered, mask, (0, 0), key, diff, diff, flags)
    return mask[2:-2, 2:-2] > 0


def center_on_canvas(array: np.ndarray, size: int, fill: int = 0) -> np.ndarray:
    """Place ``array`` in the middle of a size x size canvas filled with ``fill``."""
    height, width = array.shape[:2]
    if height > size or width > size:
        raise ValueError(f"{width}x{height} does not fit a {size}x{size} canvas")
    canvas = np.full((size, size) + array.shape[2:], fill, dtype=array.dtype)
    y0 = (size - height) // 2
    x0 = (size - width) // 2
    canvas[y0 : y0 + height, x0 : x0 + width] = array
    return canvas


def composite_over(rgba: np.ndarray, background: Sequence[int]) -> np.ndarray:
    """Source-over composite of an RGBA image onto a solid colour; returns RGB."""
    alpha = rgba[..., 3:4].astype(np.float32) / 255.0
    color = rgba[..., :3].astype(np.float32)
    base = np.asarray(background, dtype=np.float32).reshape(1, 1, 3)
    out = color * alpha + base * (1.0 - alpha)
    return np.clip(np.round(out), 0, 255).astype(np.uint8)


def quantize_two_levels(gray: np.ndarray) -> np.ndarray:
    """Reduce a grayscale image to exactly the two levels 0 and 255."""
    return np.where(gray >= 128, 255, 0).astype(np.uint8)


def modulate_brightness(rgb: np.ndarray, percent: float) -> np.ndarray:
    """Scale brightness to ``percent`` of the original."""
    scaled = rgb.astype(np.float32) * (percent / 100.0)
    return np.clip(np.round(scaled), 0, 255).astype(np.uint8)


def lighten_blend(rgb: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    """Per-channel maximum of an RGB image and a grayscale or RGB overlay."""
    if overlay.ndim == 2:
        overlay = np.repeat(overlay[:, :, None], 3, axis=2)
    return np.maximum(rgb, overlay[..., :3]).astype(np.uint8)


def draw_markers(
    rgb: np.ndarray,
    points: Iterable[Sequence[float]],
    half_width: int = 2,
    color: Tuple[int, int, int] = (255, 0, 0),
) -> np.ndarray:
    """Draw a filled square of side 2*half_width+1 centred on each point."""
    out = np.ascontiguousarray(rgb.copy())
    for x, y in points:
        cx, cy = int(round(x)), int(round(y))
        cv2.rectangle(
            out,
            (cx - half_width, cy - half_width),
            (cx + half_width, cy + half_width),
            color,
            thickness=-1,
        )
    return out
