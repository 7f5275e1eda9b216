import math

from pydantic import BaseModel, Field, model_validator

from compression_leaderboard.configuration import Configuration

SCORE_DECIMALS = 2


class Baseline(BaseModel):
    # Reference model, every score is normalized against it
    size_mb: float = Field(default=44.70, gt=0, description="Model size in MB")
    latency_ms: float = Field(default=30.00, gt=0, description="Inference latency in ms")
    accuracy_pct: float = Field(default=40.76, gt=0, le=100, description="Top-1 accuracy in %")

    @staticmethod
    def from_configuration(configuration: Configuration) -> "Baseline":
        return Baseline(
            size_mb=configuration.get_float("baseline", "size_mb"),
            latency_ms=configuration.get_float("baseline", "latency_ms"),
            accuracy_pct=configuration.get_float("baseline", "accuracy_pct"),
        )


class ScoreWeights(BaseModel):
    size: float = Field(default=0.3, ge=0)
    latency: float = Field(default=0.3, ge=0)
    accuracy: float = Field(default=0.4, ge=0)

    @model_validator(mode="after")
    def check_sum(self) -> "ScoreWeights":
        # The baseline only totals 1.00 when the weights sum to one
        if not math.isclose(self.size + self.latency + self.accuracy, 1.0, abs_tol=1e-9):
            raise ValueError("score weights must sum to 1")
        return self

    @staticmethod
    def from_configuration(configuration: Configuration) -> "ScoreWeights":
        return ScoreWeights(
            size=configuration.get_float("scoring", "size_weight"),
            latency=configuration.get_float("scoring", "latency_weight"),
            accuracy=configuration.get_float("scoring", "accuracy_weight"),
        )


DEFAULT_WEIGHTS = ScoreWeights()


class ScoreCard(BaseModel):
    size_score: float
    latency_score: float
    accuracy_score: float
    total_score: float

    def __str__(self) -> str:
        return (
            f"size: {self.size_score:.4f}, latency: {self.latency_score:.4f}, "
            + f"accuracy: {self.accuracy_score:.4f}, total: {self.total_score:.2f}"
        )


def weighted_total(
        size_score: float,
        latency_score: float,
        accuracy_score: float,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> float:
    return (
            weights.size * size_score
            + weights.latency * latency_score
            + weights.accuracy * accuracy_score
    )


def compute_scores(
        model_size_mb: float,
        latency_ms: float,
        accuracy_pct: float,
        baseline: Baseline,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> ScoreCard:
    """
    Normalize the three raw metrics against the baseline and combine them
    :param float model_size_mb: size of the submitted artifact, smaller is better
    :param float latency_ms: average inference time, smaller is better
    :param float accuracy_pct: top-1 accuracy in [0, 100], bigger is better
    :param Baseline baseline: reference metrics, scoring exactly 1 on every axis
    :param ScoreWeights weights: weights of the composite score
    :return: sub-scores unrounded, total score rounded to SCORE_DECIMALS
    """
    if model_size_mb <= 0:
        raise ValueError(f"model size must be positive, got {model_size_mb}")
    if latency_ms <= 0:
        raise ValueError(f"latency must be positive, got {latency_ms}")
    if accuracy_pct < 0 or accuracy_pct > 100:
        raise ValueError(f"accuracy must be in [0, 100], got {accuracy_pct}")

    size_score = baseline.size_mb / model_size_mb
    latency_score = baseline.latency_ms / latency_ms
    accuracy_score = accuracy_pct / baseline.accuracy_pct
    total = weighted_total(size_score, latency_score, accuracy_score, weights)
    return ScoreCard(
        size_score=size_score,
        latency_score=latency_score,
        accuracy_score=accuracy_score,
        total_score=round(total, SCORE_DECIMALS),
    )
