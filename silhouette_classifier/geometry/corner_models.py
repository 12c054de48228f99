"""Data contracts for corner sets, training examples and classifications."""

from __future__ import annotations

from dataclasses import dataclass
import numbers
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

Number = Union[int, float]
Point = Tuple[Number, Number]
CornerSet = Tuple[Point, ...]
TrainingIndex = Mapping[str, Tuple["TrainingExample", ...]]


def as_corner_set(points: Iterable[Sequence[Number]]) -> CornerSet:
    """Coerce any iterable of (x, y) pairs into a CornerSet.

    numpy scalars are converted to plain ints/floats so corner sets compare
    and serialize as ordinary values.
    """
    corners = []
    for point in points:
        if len(point) != 2:
            raise ValueError(f"Corner points must be (x, y) pairs, got {point!r}")
        corners.append((_plain_number(point[0]), _plain_number(point[1])))
    return tuple(corners)


def _plain_number(value: Any) -> Number:
    if isinstance(value, bool):
        raise ValueError("Corner coordinates must be numeric")
    if isinstance(value, numbers.Integral):
        return int(value)
    return float(value)


@dataclass(frozen=True)
class TrainingExample:
    """One training image's corner set.

    ``source`` is the image's base file name. It is only reported as the
    closest match and never takes part in scoring.
    """

    source: str
    corners: CornerSet


@dataclass(frozen=True)
class Classification:
    """Result of classifying one candidate image.

    ``category`` and ``closest`` are None when no classification was
    possible (no training examples, or no corners on the candidate).
    """

    category: Optional[str]
    confidence: float
    closest: Optional[str] = None

    @property
    def is_absent(self) -> bool:
        """True when no category could be chosen."""
        return self.category is None

    def to_dict(self) -> Dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "category": self.category,
            "confidence": self.confidence,
            "closest": self.closest,
        }
