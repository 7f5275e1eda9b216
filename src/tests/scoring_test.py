import pytest
from pydantic import ValidationError

from compression_leaderboard.scoring import (
    Baseline,
    ScoreWeights,
    compute_scores,
    weighted_total,
)


class TestClass:
    def test_reference_submission(self, baseline) -> None:
        scores = compute_scores(42.91, 30.58, 28.66, baseline)
        assert scores.size_score == pytest.approx(1.0417, abs=1e-4)
        assert scores.latency_score == pytest.approx(0.9810, abs=1e-4)
        assert scores.accuracy_score == pytest.approx(0.7031, abs=1e-4)
        assert scores.total_score == 0.89

    def test_total_matches_formula(self, baseline) -> None:
        for size, latency, accuracy in [(10.0, 12.5, 38.0), (44.7, 60.0, 75.2), (100.0, 3.3, 0.0)]:
            scores = compute_scores(size, latency, accuracy, baseline)
            expected = (
                    0.3 * (baseline.size_mb / size)
                    + 0.3 * (baseline.latency_ms / latency)
                    + 0.4 * (accuracy / baseline.accuracy_pct)
            )
            assert scores.total_score == pytest.approx(expected, abs=0.005)

    @pytest.mark.parametrize(
        "size, latency, accuracy",
        [(44.70, 30.00, 40.76), (1.0, 1.0, 1.0), (512.3, 0.25, 99.9)],
    )
    def test_baseline_scores_one(self, size, latency, accuracy) -> None:
        reference = Baseline(size_mb=size, latency_ms=latency, accuracy_pct=accuracy)
        scores = compute_scores(size, latency, accuracy, reference)
        assert scores.size_score == 1.0
        assert scores.latency_score == 1.0
        assert scores.accuracy_score == 1.0
        assert scores.total_score == 1.0

    def test_better_than_baseline(self, baseline) -> None:
        scores = compute_scores(22.35, 15.0, 40.76, baseline)
        assert scores.size_score == pytest.approx(2.0)
        assert scores.latency_score == pytest.approx(2.0)
        assert scores.total_score == 1.6

    def test_invalid_metrics(self, baseline) -> None:
        with pytest.raises(ValueError):
            compute_scores(0, 30, 40, baseline)
        with pytest.raises(ValueError):
            compute_scores(10, -1, 40, baseline)
        with pytest.raises(ValueError):
            compute_scores(10, 30, 101, baseline)

    def test_weights_must_sum_to_one(self) -> None:
        with pytest.raises(ValidationError):
            ScoreWeights(size=0.5, latency=0.5, accuracy=0.5)

    def test_custom_weights(self, baseline) -> None:
        weights = ScoreWeights(size=0.0, latency=0.0, accuracy=1.0)
        scores = compute_scores(1.0, 1.0, 20.38, baseline, weights)
        assert scores.total_score == 0.5
        assert weighted_total(2.0, 2.0, 0.5, weights) == 0.5

    def test_baseline_validation(self) -> None:
        with pytest.raises(ValidationError):
            Baseline(size_mb=0, latency_ms=30, accuracy_pct=40)
        with pytest.raises(ValidationError):
            Baseline(size_mb=10, latency_ms=30, accuracy_pct=0)
