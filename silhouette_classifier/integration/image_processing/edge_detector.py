"""Edge detection over normalized silhouettes."""

from __future__ import annotations

from typing import Optional, Protocol

import cv2
import numpy as np

from config import EdgeDetectConfig


class EdgeDetector(Protocol):
    """Anything that turns a silhouette into an edge mask."""

    def process(self, silhouette: np.ndarray) -> np.ndarray:
        ...


def _single_channel(silhouette: np.ndarray) -> np.ndarray:
    """The mask itself, the alpha plane of RGBA, or the luma of RGB, as uint8."""
    if silhouette.ndim == 3 and silhouette.shape[2] == 4:
        silhouette = silhouette[:, :, 3]
    elif silhouette.ndim == 3 and silhouette.shape[2] == 3:
        silhouette = cv2.cvtColor(silhouette.astype(np.uint8), cv2.COLOR_RGB2GRAY)
    elif silhouette.ndim != 2:
        raise ValueError(f"Unsupported silhouette shape: {silhouette.shape}")
    return np.ascontiguousarray(silhouette, dtype=np.uint8)


class CannyEdgeDetector:
    """Gaussian smoothing followed by Canny hysteresis thresholding."""

    def __init__(self, settings: Optional[EdgeDetectConfig] = None) -> None:
        self.settings = settings or EdgeDetectConfig()

    @property
    def kernel_size(self) -> int:
        """Gaussian kernel side; OpenCV needs it odd."""
        k = int(self.settings.kernel_width)
        return k if k % 2 == 1 else k + 1

    def process(self, silhouette: np.ndarray) -> np.ndarray:
        """
        Extract an edge mask from a silhouette.

        Args:
            silhouette: (H, W) or colour image array

        Returns:
            (H, W) uint8 edge mask with edges at 255

        Raises:
            ValueError: silhouette is neither (H, W), (H, W, 3) nor (H, W, 4)
        """
        gray = _single_channel(silhouette)
        if gray.size == 0:
            return np.zeros(gray.shape, dtype=np.uint8)
        k = self.kernel_size
        blurred = cv2.GaussianBlur(gray, (k, k), self.settings.kernel_radius)
        return cv2.Canny(
            blurred, self.settings.low_threshold, self.settings.high_threshold
        )
