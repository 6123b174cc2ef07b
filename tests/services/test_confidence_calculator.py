"""Unit tests for confidence scoring and the decision policy."""

import pytest

from locator_healing.core.models import (
    HealingAction,
    HealingResult,
    HealingStrategy,
    Rect,
)
from locator_healing.services.confidence_calculator import (
    ConfidenceCalculator,
    calculate_confidence,
    determine_action,
)


@pytest.fixture
def fingerprint(make_fingerprint):
    return make_fingerprint(center=(100, 100), rect=Rect(x=50, y=75, width=100, height=50))


class TestDistanceScoring:
    """Test the distance factor."""

    def test_same_position(self, fingerprint):
        """No displacement scores 100."""
        score = calculate_confidence((100, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.distance_score == 100

    @pytest.mark.parametrize("center,expected", [
        ((120, 100), 90),
        ((150, 100), 75),
        ((200, 100), 50),
        ((100, 160), 70),
    ])
    def test_half_point_per_pixel(self, fingerprint, center, expected):
        """Each pixel of displacement costs half a point."""
        score = calculate_confidence(center, fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.distance_score == expected

    def test_euclidean_distance(self, fingerprint):
        """Diagonal displacement uses the Euclidean distance."""
        # 3-4-5 triangle scaled by 20: 100 px away
        score = calculate_confidence((160, 180), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.distance_score == 50

    def test_never_below_zero(self, fingerprint):
        """Large displacements are clamped at 0."""
        score = calculate_confidence((400, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.distance_score == 0

    def test_custom_tolerance(self, fingerprint):
        """The tolerance sets where the score reaches zero."""
        score = calculate_confidence((150, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL, distance_tolerance=100)

        assert score.factors.distance_score == 50

    def test_invalid_tolerance(self):
        """Non-positive tolerances are rejected."""
        with pytest.raises(ValueError):
            ConfidenceCalculator(distance_tolerance=0)


class TestSizeScoring:
    """Test the size factor."""

    @pytest.mark.parametrize("rect,expected", [
        (Rect(x=0, y=0, width=100, height=50), 100),
        (Rect(x=0, y=0, width=200, height=50), 50),
        (Rect(x=0, y=0, width=50, height=25), 25),
        (Rect(x=0, y=0, width=50, height=100), 25),
    ])
    def test_dimension_ratios(self, fingerprint, rect, expected):
        """Each dimension contributes its min/max ratio."""
        score = calculate_confidence((100, 100), rect, fingerprint, HealingStrategy.NORMAL)

        assert score.factors.size_score == expected

    def test_zero_sized_candidate(self, fingerprint):
        """A collapsed candidate scores 0 on size."""
        score = calculate_confidence((100, 100), Rect(x=0, y=0, width=0, height=50), fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.size_score == 0

    def test_both_degenerate(self, make_fingerprint):
        """Two zero-width boxes compare as the same width."""
        fingerprint = make_fingerprint(center=(0, 0), rect=Rect(x=0, y=0, width=0, height=10))

        score = calculate_confidence((0, 0), Rect(x=0, y=0, width=0, height=10), fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.size_score == 100


class TestStrategyScoring:
    """Test the strategy factor."""

    def test_normal(self, fingerprint):
        score = calculate_confidence((100, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.factors.strategy_score == 100

    def test_deep_think_penalized(self, fingerprint):
        score = calculate_confidence((100, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.DEEP_THINK)

        assert score.factors.strategy_score == 90


class TestOverallConfidence:
    """Test the weighted combination."""

    def test_perfect_match(self, fingerprint):
        """Same position, same size, normal strategy scores 100."""
        score = calculate_confidence((100, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.NORMAL)

        assert score.confidence == 100

    def test_weighted_factors(self, fingerprint):
        """50 * 0.4 + 100 * 0.3 + 90 * 0.3 = 77."""
        score = calculate_confidence((200, 100), Rect(x=150, y=75, width=100, height=50),
                                     fingerprint, HealingStrategy.DEEP_THINK)

        assert score.confidence == 77

    def test_far_and_shrunk(self, fingerprint):
        """0 * 0.4 + 50 * 0.3 + 90 * 0.3 = 42."""
        score = calculate_confidence((300, 100), Rect(x=0, y=0, width=100, height=25),
                                     fingerprint, HealingStrategy.DEEP_THINK)

        assert score.confidence == 42

    def test_bounded(self, fingerprint):
        """Confidence and every factor stay within [0, 100]."""
        candidates = [
            ((100, 100), Rect(x=0, y=0, width=100, height=50)),
            ((5000, -5000), Rect(x=0, y=0, width=1, height=1)),
            ((100, 100), Rect(x=0, y=0, width=0, height=0)),
            ((101, 99), Rect(x=0, y=0, width=10000, height=10000)),
        ]
        for center, rect in candidates:
            for strategy in HealingStrategy:
                score = calculate_confidence(center, rect, fingerprint, strategy)
                assert 0 <= score.confidence <= 100
                for value in (score.factors.distance_score, score.factors.size_score,
                              score.factors.strategy_score):
                    assert 0 <= value <= 100

    def test_geometry_dominates_strategy(self, fingerprint):
        """A far, resized normal match scores below a close deepThink match."""
        close = calculate_confidence((100, 100), fingerprint.last_known_rect, fingerprint,
                                     HealingStrategy.DEEP_THINK)
        far = calculate_confidence((250, 100), Rect(x=0, y=0, width=200, height=100),
                                   fingerprint, HealingStrategy.NORMAL)

        assert close.confidence > far.confidence

    def test_custom_weights_normalized(self, fingerprint):
        """Custom weights are rescaled to sum to one."""
        calculator = ConfidenceCalculator(custom_weights={'distance': 2, 'size': 1, 'strategy': 1})

        assert sum(calculator.weights.values()) == pytest.approx(1.0)
        assert calculator.weights['distance'] == pytest.approx(0.5)

    def test_deterministic(self, fingerprint):
        """Equal inputs give equal scores."""
        first = calculate_confidence((130, 90), Rect(x=0, y=0, width=90, height=55), fingerprint,
                                     HealingStrategy.DEEP_THINK)
        second = calculate_confidence((130, 90), Rect(x=0, y=0, width=90, height=55), fingerprint,
                                      HealingStrategy.DEEP_THINK)

        assert first == second


class TestDetermineAction:
    """Test the accept/confirm/reject policy."""

    @staticmethod
    def result(success, confidence):
        return HealingResult(success=success, healing_id="heal-1", confidence=confidence)

    @pytest.mark.parametrize("confidence", [80, 90, 100])
    def test_auto_accept_at_or_above_threshold(self, confidence):
        assert determine_action(self.result(True, confidence), 80) == HealingAction.AUTO_ACCEPT

    @pytest.mark.parametrize("confidence", [0, 30, 49, 79])
    def test_confirmation_below_threshold(self, confidence):
        """Any successful result below the threshold asks for confirmation."""
        assert determine_action(self.result(True, confidence), 80) == HealingAction.REQUEST_CONFIRMATION

    @pytest.mark.parametrize("confidence", [0, 79, 100])
    def test_reject_iff_failed(self, confidence):
        """Failed results are rejected whatever their confidence."""
        assert determine_action(self.result(False, confidence), 80) == HealingAction.REJECT

    def test_threshold_extremes(self):
        """Threshold 0 accepts every success; 100 only perfect ones."""
        assert determine_action(self.result(True, 0), 0) == HealingAction.AUTO_ACCEPT
        assert determine_action(self.result(True, 99), 100) == HealingAction.REQUEST_CONFIRMATION
        assert determine_action(self.result(True, 100), 100) == HealingAction.AUTO_ACCEPT

    def test_total_function(self):
        """Every combination maps to exactly one action."""
        for success in (True, False):
            for confidence in range(0, 101, 5):
                for threshold in range(0, 101, 10):
                    action = determine_action(self.result(success, confidence), threshold)
                    assert isinstance(action, HealingAction)
                    assert (action == HealingAction.REJECT) == (not success)
