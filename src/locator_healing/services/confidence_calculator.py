"""
Confidence scoring for healed element locations.

A located candidate is compared with the fingerprint's last known geometry:

- distance: Euclidean distance between centers, linear decay to zero at
  the distance tolerance
- size: per-dimension min/max ratio of the bounding boxes, so both area and
  aspect ratio changes lower the score
- strategy: fixed score per locate strategy, deepThink below normal

The weighted sum is rounded and clamped to [0, 100]. Everything here is pure
and deterministic.
"""

import math
from typing import Dict, Optional

from ..core.models import (
    ConfidenceFactors,
    ConfidenceScore,
    HealingAction,
    HealingResult,
    HealingStrategy,
    Point,
    Rect,
    SemanticFingerprint,
)


DEFAULT_DISTANCE_TOLERANCE = 200.0  # pixels


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _dimension_ratio(a: float, b: float) -> float:
    """Ratio of smaller to larger; two degenerate sides compare equal."""
    if a <= 0 or b <= 0:
        return 1.0 if a == b else 0.0
    return min(a, b) / max(a, b)


class ConfidenceCalculator:
    """Scores a located candidate against a fingerprint."""

    DEFAULT_WEIGHTS = {
        'distance': 0.4,
        'size': 0.3,
        'strategy': 0.3,
    }

    STRATEGY_SCORES = {
        HealingStrategy.NORMAL: 100,
        HealingStrategy.DEEP_THINK: 90,
    }

    def __init__(self, distance_tolerance: float = DEFAULT_DISTANCE_TOLERANCE,
                 custom_weights: Optional[Dict[str, float]] = None):
        """
        Args:
            distance_tolerance: Displacement in pixels at which the distance
                score reaches zero
            custom_weights: Optional override of factor weights
        """
        if distance_tolerance <= 0:
            raise ValueError(f"distance_tolerance must be positive, got {distance_tolerance}")

        self.distance_tolerance = distance_tolerance
        self.weights = self.DEFAULT_WEIGHTS.copy()
        if custom_weights:
            self.weights.update(custom_weights)

        total = sum(self.weights.values())
        if total <= 0:
            raise ValueError("Confidence weights must sum to a positive value")
        self.weights = {name: weight / total for name, weight in self.weights.items()}

    def distance_score(self, center: Point, last_known_center: Point) -> float:
        distance = math.hypot(center[0] - last_known_center[0],
                              center[1] - last_known_center[1])
        return _clamp(100.0 - 100.0 * distance / self.distance_tolerance)

    def size_score(self, rect: Rect, last_known_rect: Rect) -> float:
        width_ratio = _dimension_ratio(rect.width, last_known_rect.width)
        height_ratio = _dimension_ratio(rect.height, last_known_rect.height)
        return _clamp(100.0 * width_ratio * height_ratio)

    def strategy_score(self, strategy: HealingStrategy) -> float:
        return float(self.STRATEGY_SCORES[strategy])

    def calculate(self, center: Point, rect: Rect, fingerprint: SemanticFingerprint,
                  strategy: HealingStrategy) -> ConfidenceScore:
        """
        Score a candidate location.

        Args:
            center: Center of the located candidate
            rect: Bounding box of the located candidate
            fingerprint: Fingerprint of the step being healed
            strategy: Strategy that produced the candidate

        Returns:
            ConfidenceScore with integer confidence and factors in [0, 100]
        """
        distance = self.distance_score(center, fingerprint.last_known_center)
        size = self.size_score(rect, fingerprint.last_known_rect)
        strategy_value = self.strategy_score(strategy)

        weighted = (
            distance * self.weights['distance']
            + size * self.weights['size']
            + strategy_value * self.weights['strategy']
        )

        return ConfidenceScore(
            confidence=int(round(_clamp(weighted))),
            factors=ConfidenceFactors(
                distance_score=int(round(distance)),
                size_score=int(round(size)),
                strategy_score=int(round(strategy_value)),
            ),
        )


def calculate_confidence(center: Point, rect: Rect, fingerprint: SemanticFingerprint,
                         strategy: HealingStrategy,
                         distance_tolerance: float = DEFAULT_DISTANCE_TOLERANCE) -> ConfidenceScore:
    """Score a candidate with the default weights."""
    return ConfidenceCalculator(distance_tolerance).calculate(center, rect, fingerprint, strategy)


def determine_action(result: HealingResult, auto_accept_threshold: int) -> HealingAction:
    """
    Decide what to do with a healing result.

    reject iff the healing failed; auto_accept at or above the threshold;
    request_confirmation for any other successful result.
    """
    if not result.success:
        return HealingAction.REJECT
    if result.confidence >= auto_accept_threshold:
        return HealingAction.AUTO_ACCEPT
    return HealingAction.REQUEST_CONFIRMATION
