"""Image file -> corner set, through silhouette, edge and corner stages."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import numpy as np

from config import ClassifierConfig, DebugLevel
from errors import CacheMissError
from geometry.corner_models import CornerSet, as_corner_set
from geometry.silhouette import NormalizedSilhouette, SilhouetteBuilder
from integration.image_processing import image_ops
from integration.image_processing.edge_detector import CannyEdgeDetector, EdgeDetector
from integration.image_processing.image_loader import save_image
from integration.shape_matching.corner_detector import (
    CornerDetector,
    TurningAngleCornerDetector,
)
from utils.feature_cache import FeatureCache
from utils.run_context import RunContext
from utils.work_paths import WorkPaths

MARKER_HALF_WIDTH = 2
COMPOSITE_BRIGHTNESS = 20


def annotate_corners(
    composite: np.ndarray, edges: np.ndarray, corners: CornerSet
) -> np.ndarray:
    """Darken the composite, lighten the edges over it and mark each corner."""
    annotated = image_ops.modulate_brightness(composite, COMPOSITE_BRIGHTNESS)
    annotated = image_ops.lighten_blend(annotated, edges)
    return image_ops.draw_markers(annotated, corners, half_width=MARKER_HALF_WIDTH)


class CornerExtractor:
    """Extract (and cache) the corner set of an image file."""

    def __init__(
        self,
        config: ClassifierConfig,
        *,
        builder: Optional[SilhouetteBuilder] = None,
        edge_detector: Optional[EdgeDetector] = None,
        corner_detector: Optional[CornerDetector] = None,
        cache: Optional[FeatureCache] = None,
        context: Optional[RunContext] = None,
    ) -> None:
        self.config = config
        self.paths = WorkPaths(config.training_dir, config.work_dir)
        self.builder = builder or SilhouetteBuilder.from_config(config)
        self.edge_detector = edge_detector or CannyEdgeDetector(config.edge)
        self.corner_detector = corner_detector or TurningAngleCornerDetector(
            config.corner
        )
        self.cache = cache or FeatureCache(
            self.paths, force_refresh=config.force_refresh
        )
        self.context = context or RunContext(verbose=config.verbose)

    def extract(self, filename: Union[str, Path], cacheable: bool = True) -> CornerSet:
        """
        Return the corner set of ``filename``.

        With ``cacheable`` set, a fresh cache entry is returned without any
        image processing, and freshly computed corners are written back.
        Without it the cache is neither read nor written.

        Raises:
            ImageDecodeError: the image cannot be rasterized
            CacheIOError: the cache or debug output cannot be written
        """
        filename = Path(filename)
        if cacheable:
            try:
                corners = self.cache.lookup(filename)
            except CacheMissError:
                pass
            else:
                self.context.debug("cache hit", file=filename, corners=len(corners))
                return corners

        with self.context.time_block("silhouette"):
            normalized = self.builder.build(filename)
        try:
            with self.context.time_block("edges"):
                edges = self.edge_detector.process(normalized.silhouette)
            with self.context.time_block("corners"):
                corners = as_corner_set(self.corner_detector.process(edges))
        except Exception as exc:
            if self.config.debug_level > DebugLevel.OFF:
                self.context.error("detector failed", file=filename, error=repr(exc))
            raise

        self.context.debug("extracted corners", file=filename, corners=len(corners))
        self._write_debug_images(filename, normalized, edges, corners)

        if cacheable:
            self.cache.save(self.cache.cache_path(filename), corners)
        return corners

    def _write_debug_images(
        self,
        filename: Path,
        normalized: NormalizedSilhouette,
        edges: np.ndarray,
        corners: CornerSet,
    ) -> None:
        level = self.config.debug_level
        if level < DebugLevel.COMPOSITE:
            return
        self._write_stage(
            filename, "composite", annotate_corners(normalized.composite, edges, corners)
        )
        if level >= DebugLevel.STAGES:
            self._write_stage(filename, "silhouette", normalized.silhouette)
            self._write_stage(filename, "edges", edges)
        if level >= DebugLevel.CLIP:
            self._write_stage(filename, "clip", normalized.clipped)

    def _write_stage(self, filename: Path, stage: str, image: np.ndarray) -> None:
        path = self.paths.work_file(filename, stage, self.config.debug_image_ext)
        save_image(image, path)
        self.context.debug("wrote debug image", stage=stage, path=path)
