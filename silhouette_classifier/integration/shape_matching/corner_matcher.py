"""Corner-set similarity and brute-force nearest-example search."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np

from geometry.corner_models import Classification, TrainingIndex


def score(
    test: Sequence[Tuple[float, float]],
    candidate: Sequence[Tuple[float, float]],
    match_radius: float,
) -> float:
    """
    Similarity of two corner sets, in [0, 1].

    Each ``test`` point is credited with its best match in ``candidate``,
    falling off linearly from 1 at distance 0 to 0 at ``match_radius``.
    The sum is divided by the size of the larger set, so unmatched extra
    points on either side lower the score. The result is not symmetric:
    ``score(a, b)`` and ``score(b, a)`` generally differ.

    Args:
        test: Corner set whose points are matched
        candidate: Corner set searched for matches
        match_radius: Distance at which a pair stops counting

    Returns:
        Similarity score, 0 if either set is empty
    """
    if len(test) == 0 or len(candidate) == 0:
        return 0.0
    if match_radius <= 0:
        raise ValueError("match_radius must be > 0")

    a = np.asarray(test, dtype=np.float64).reshape(-1, 2)
    b = np.asarray(candidate, dtype=np.float64).reshape(-1, 2)

    dist_sq = ((a[:, None, :] - b[None, :, :]) ** 2).sum(axis=2)
    contribution = np.maximum(0.0, 1.0 - dist_sq / float(match_radius) ** 2)
    total = float(contribution.max(axis=1).sum())
    return total / max(len(a), len(b))


def best_match(
    candidate: Sequence[Tuple[float, float]],
    index: TrainingIndex,
    match_radius: float,
) -> Classification:
    """
    Score ``candidate`` against every training example, in index order.

    A later example replaces the current best only with a strictly higher
    score, so the first example encountered wins ties. An empty candidate
    or an empty index yields an absent classification.
    """
    if len(candidate) == 0:
        return Classification(category=None, confidence=0.0, closest=None)

    best: Optional[Classification] = None
    for category, examples in index.items():
        for example in examples:
            value = score(candidate, example.corners, match_radius)
            if best is None or value > best.confidence:
                best = Classification(
                    category=category, confidence=value, closest=example.source
                )

    if best is None:
        return Classification(category=None, confidence=0.0, closest=None)
    return best
