"""Normalize arbitrary images into canonical binary silhouettes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

import numpy as np
from PIL import Image

from config import ClassifierConfig, SilhouetteConfig
from integration.image_processing import image_ops
from integration.image_processing.image_loader import load_raster

WHITE = (255, 255, 255)


class BackgroundRemover(Protocol):
    """Strategy that makes an image's background transparent."""

    def remove(self, rgba: np.ndarray) -> np.ndarray:
        ...


class KeepAlpha:
    """Trust the source's alpha channel as-is."""

    def remove(self, rgba: np.ndarray) -> np.ndarray:
        return rgba


@dataclass(frozen=True)
class CornerFloodFill:
    """
    Key out a flat background for images without usable transparency.

    Runs only when fewer than ``min_transparency`` of the pixels are
    transparent, e.g. scans and flattened JPEGs. The fill starts at the
    top-left pixel and uses its colour as the background key.
    """

    fuzz: float = 0.02
    min_transparency: float = 0.01

    def remove(self, rgba: np.ndarray) -> np.ndarray:
        if image_ops.transparency_ratio(rgba) >= self.min_transparency:
            return rgba
        background = image_ops.flood_fill_mask(rgba[..., :3], self.fuzz)
        out = rgba.copy()
        out[background, 3] = 0
        return out


@dataclass(frozen=True)
class NormalizedSilhouette:
    """Output of :meth:`SilhouetteBuilder.normalize`.

    silhouette: (size, size) uint8, subject 255 on background 0.
    composite: (size, size, 3) RGB subject over white, for debug overlays.
    clipped: (h, w, 4) RGBA scaled subject before binarization.
    """

    silhouette: np.ndarray
    composite: np.ndarray
    clipped: np.ndarray


class SilhouetteBuilder:
    """Scale, clip and centre a subject, then binarize it.

    The subject is fitted to ``image_size - 2 * image_border`` on its longer
    side and centred on an ``image_size`` square canvas.
    """

    def __init__(
        self,
        image_size: int = 200,
        image_border: int = 4,
        *,
        settings: Optional[SilhouetteConfig] = None,
        background_remover: Optional[BackgroundRemover] = None,
    ) -> None:
        if image_size - 2 * image_border < 1:
            raise ValueError("image_border leaves no room for the subject")
        self.image_size = image_size
        self.image_border = image_border
        self.settings = settings or SilhouetteConfig()
        if background_remover is None:
            background_remover = CornerFloodFill(
                fuzz=self.settings.fuzz,
                min_transparency=self.settings.min_transparency,
            )
        self.background_remover = background_remover

    @classmethod
    def from_config(
        cls,
        config: ClassifierConfig,
        background_remover: Optional[BackgroundRemover] = None,
    ) -> "SilhouetteBuilder":
        return cls(
            config.image_size,
            config.image_border,
            settings=config.silhouette,
            background_remover=background_remover,
        )

    @property
    def scaled_size(self) -> int:
        return self.image_size - 2 * self.image_border

    def build(self, image_path: Union[str, Path]) -> NormalizedSilhouette:
        """Load ``image_path`` and normalize it. Raises ImageDecodeError."""
        image = load_raster(image_path, density=self.settings.render_density)
        return self.normalize(image)

    def normalize(self, image: Union[Image.Image, np.ndarray]) -> NormalizedSilhouette:
        """Normalize a decoded image (Pillow image or uint8 array)."""
        if isinstance(image, np.ndarray):
            image = Image.fromarray(np.ascontiguousarray(image))

        rgba = image_ops.linearize_srgb(image_ops.to_rgba(image))

        height, width = rgba.shape[:2]
        target = image_ops.fit_within(width, height, self.scaled_size)
        rgba = image_ops.resize_with_blur(rgba, target, self.settings.resize_blur)

        rgba = self.background_remover.remove(rgba)
        clipped = image_ops.clip_to_alpha(rgba)

        # Copy the subject's opacity onto the canvas, then white over black.
        alpha = image_ops.center_on_canvas(clipped[..., 3], self.image_size, fill=0)
        silhouette = image_ops.quantize_two_levels(alpha)

        composite = image_ops.composite_over(
            image_ops.center_on_canvas(clipped, self.image_size, fill=0), WHITE
        )
        return NormalizedSilhouette(
            silhouette=silhouette, composite=composite, clipped=clipped
        )
