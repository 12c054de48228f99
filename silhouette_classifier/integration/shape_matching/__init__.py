"""Corner detection on edge masks and corner-set matching."""

from .corner_detector import CornerDetector, TurningAngleCornerDetector, turning_angles
from .corner_matcher import best_match, score

__all__ = [
    "CornerDetector",
    "TurningAngleCornerDetector",
    "turning_angles",
    "best_match",
    "score",
]
