"""
Embedding matching module.

Matches a query embedding against the gallery by Euclidean distance.
A match must pass three tests:
- absolute cutoff: best distance below the threshold
- ratio test: best distance clearly smaller than the runner-up
- third-candidate separation: best distance clearly smaller than the third
"""

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..config import Config
from ..logging_config import get_logger
from .gallery import GalleryIndex, Identity
from .metrics import VectorLike, distances_to_references

logger = get_logger(__name__)

# (distance / threshold, confidence percent) breakpoints, linear in between
CONFIDENCE_CURVE: Tuple[Tuple[float, float], ...] = (
    (0.0, 100.0),
    (0.5, 90.0),
    (0.8, 60.0),
    (1.0, 0.0),
)


@dataclass(frozen=True)
class MatchResult:
    """Accepted match of a query against one identity."""

    identity_id: str
    display_name: str
    confidence: float
    distance: float


def distance_to_confidence(distance: float, threshold: float) -> float:
    """
    Map a distance to a confidence percentage.

    Monotonically decreasing: 0 distance is 100%, the threshold and
    anything beyond it is 0%.

    Args:
        distance: Best distance of the match
        threshold: Absolute distance cutoff

    Returns:
        Confidence in range [0, 100]
    """
    if threshold <= 0 or not math.isfinite(distance) or distance >= threshold:
        return 0.0
    xs = [point[0] for point in CONFIDENCE_CURVE]
    ys = [point[1] for point in CONFIDENCE_CURVE]
    return float(np.interp(max(distance, 0.0) / threshold, xs, ys))


def rank_candidates(
    query: VectorLike,
    gallery: GalleryIndex
) -> List[Tuple[Identity, float]]:
    """
    Best distance per identity, closest first.

    Identities without references or without a finite distance are left
    out. The sort is stable, so equal distances keep gallery order.

    Raises:
        DimensionMismatch: If the query does not fit the gallery
    """
    candidates: List[Tuple[Identity, float]] = []

    for identity in gallery:
        if not identity.has_references:
            continue
        distances = distances_to_references(query, identity.references)
        finite = distances[np.isfinite(distances)]
        if finite.size == 0:
            continue
        candidates.append((identity, float(finite.min())))

    candidates.sort(key=lambda item: item[1])
    return candidates


def _ratio(numerator: float, denominator: float) -> float:
    # Two exact hits are indistinguishable
    if denominator <= 0:
        return 1.0
    return numerator / denominator


class IdentityMatcher:
    """
    Distance-based identity matcher with false-positive suppression.
    """

    def __init__(
        self,
        threshold: float,
        ratio_test_max: float = 0.85,
        third_candidate_ratio_max: float = 0.7
    ):
        """
        Initialize matcher.

        Args:
            threshold: Absolute distance cutoff
            ratio_test_max: Reject when best / second-best exceeds this
            third_candidate_ratio_max: Reject when best / third-best exceeds this
        """
        self.threshold = threshold
        self.ratio_test_max = ratio_test_max
        self.third_candidate_ratio_max = third_candidate_ratio_max

    @classmethod
    def from_config(cls, config: Config) -> 'IdentityMatcher':
        return cls(
            threshold=config.match_threshold,
            ratio_test_max=config.ratio_test_max,
            third_candidate_ratio_max=config.third_candidate_ratio_max,
        )

    def match(
        self,
        query: VectorLike,
        gallery: GalleryIndex,
        threshold: Optional[float] = None
    ) -> Optional[MatchResult]:
        """
        Find the enrolled identity for a query embedding.

        Args:
            query: Face embedding to match
            gallery: Identities of the active session
            threshold: Overrides the configured distance cutoff

        Returns:
            MatchResult, or None if nothing passes all tests

        Raises:
            DimensionMismatch: If the query does not fit the gallery
        """
        cutoff = self.threshold if threshold is None else threshold
        candidates = rank_candidates(query, gallery)

        if not candidates:
            return None

        best_identity, best = candidates[0]

        if best >= cutoff:
            logger.debug(f'No match: best distance {best:.3f} >= {cutoff:.3f}')
            return None

        if len(candidates) > 1:
            runner_up = candidates[1][1]
            if _ratio(best, runner_up) > self.ratio_test_max:
                logger.debug(
                    f'Ambiguous: {best_identity.identity_id} {best:.3f} vs '
                    f'{candidates[1][0].identity_id} {runner_up:.3f}'
                )
                return None

        if len(candidates) > 2:
            third = candidates[2][1]
            if _ratio(best, third) > self.third_candidate_ratio_max:
                logger.debug(
                    f'Ambiguous: {best_identity.identity_id} {best:.3f} not separated '
                    f'from third candidate {third:.3f}'
                )
                return None

        return MatchResult(
            identity_id=best_identity.identity_id,
            display_name=best_identity.display_name,
            confidence=distance_to_confidence(best, cutoff),
            distance=best,
        )
