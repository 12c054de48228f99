"""Corner detection on edge masks by contour turning angle."""

from __future__ import annotations

from typing import List, Optional, Protocol, Tuple

import cv2
import numpy as np
from scipy.ndimage import maximum_filter1d

from config import CornerDetectConfig
from geometry.corner_models import CornerSet, as_corner_set


class CornerDetector(Protocol):
    """Anything that turns an edge mask into a corner set."""

    def process(self, edge_mask: np.ndarray) -> CornerSet:
        ...


def turning_angles(points: np.ndarray, step: int) -> np.ndarray:
    """
    Turning angle in degrees at every point of a closed contour.

    The angle at point i is measured between the chords (i - step -> i) and
    (i -> i + step), so 0 means straight and 180 means a full reversal.

    Args:
        points: (N, 2) contour points in traversal order
        step: Chord length in contour points

    Returns:
        (N,) array of angles in [0, 180]
    """
    prev_pts = np.roll(points, step, axis=0)
    next_pts = np.roll(points, -step, axis=0)
    incoming = points - prev_pts
    outgoing = next_pts - points
    heading_in = np.arctan2(incoming[:, 1], incoming[:, 0])
    heading_out = np.arctan2(outgoing[:, 1], outgoing[:, 0])
    delta = heading_out - heading_in
    delta = np.arctan2(np.sin(delta), np.cos(delta))
    return np.degrees(np.abs(delta))


class TurningAngleCornerDetector:
    """
    Report points where edge contours turn sharply.

    Edge pixels at or above ``contrast`` are traced into contours; a point
    is a corner when its turning angle over ``sensitivity`` contour steps is
    a local maximum of at least ``turn_angle_threshold`` degrees. Corners
    closer than ``min_separation`` to a stronger one are dropped, and at most
    ``max_corners`` are kept.
    """

    def __init__(self, settings: Optional[CornerDetectConfig] = None) -> None:
        self.settings = settings or CornerDetectConfig()

    def process(self, edge_mask: np.ndarray) -> CornerSet:
        if edge_mask is None or edge_mask.size == 0:
            return ()
        if edge_mask.ndim == 3:
            edge_mask = cv2.cvtColor(edge_mask[:, :, :3], cv2.COLOR_RGB2GRAY)

        level = max(1, int(self.settings.contrast))
        binary = np.where(edge_mask >= level, 255, 0).astype(np.uint8)
        contours, _ = cv2.findContours(binary, cv2.RETR_LIST, cv2.CHAIN_APPROX_NONE)

        candidates: List[Tuple[float, int, int]] = []
        for contour in contours:
            candidates.extend(self._contour_candidates(contour.reshape(-1, 2)))
        return self._suppress(candidates)

    def _contour_candidates(self, points: np.ndarray) -> List[Tuple[float, int, int]]:
        step = int(self.settings.sensitivity)
        if len(points) < 2 * step + 1:
            return []
        angles = turning_angles(points.astype(np.float64), step)
        peaks = maximum_filter1d(angles, size=2 * step + 1, mode="wrap")
        keep = (angles >= self.settings.turn_angle_threshold) & (angles >= peaks)
        return [
            (float(angles[i]), int(points[i, 0]), int(points[i, 1]))
            for i in np.flatnonzero(keep)
        ]

    def _suppress(self, candidates: List[Tuple[float, int, int]]) -> CornerSet:
        # Strongest first; ties broken by position for a stable result.
        ordered = sorted(candidates, key=lambda c: (-c[0], c[2], c[1]))
        min_dist_sq = float(self.settings.min_separation) ** 2
        kept: List[Tuple[int, int]] = []
        for _, x, y in ordered:
            if len(kept) >= self.settings.max_corners:
                break
            if any((x - kx) ** 2 + (y - ky) ** 2 <= min_dist_sq for kx, ky in kept):
                continue
            kept.append((x, y))
        kept.sort(key=lambda p: (p[1], p[0]))
        return as_corner_set(kept)
