"""Image IO, raster primitives and edge detection."""

from .edge_detector import CannyEdgeDetector, EdgeDetector
from .image_loader import load_raster, save_image

__all__ = [
    "CannyEdgeDetector",
    "EdgeDetector",
    "load_raster",
    "save_image",
]
