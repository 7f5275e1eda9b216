from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator

from compression_leaderboard.scoring import SCORE_DECIMALS, Baseline, ScoreCard

DATE_FORMAT = "%Y-%m-%d %H:%M:%S UTC"
BASELINE_USERNAME = "baseline"
NOT_AVAILABLE = "N/A"


def format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime(DATE_FORMAT)


def utc_now() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def _single_line(value: str) -> str:
    return " ".join(str(value).split())


class SubmissionResult(BaseModel):
    """One evaluation outcome, as handed over by the orchestration"""

    username: str = Field(min_length=1)
    model_size_mb: float = Field(gt=0)
    latency_ms: float = Field(gt=0)
    accuracy_pct: float = Field(ge=0, le=100)
    total_score: float = Field(ge=0)
    submission_date: str = Field(min_length=1)
    notes: str = ""

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        value = value.strip()
        if value == "" or "|" in value or any(c.isspace() for c in value):
            raise ValueError("username must be a single word without '|'")
        return value

    @field_validator("submission_date", "notes")
    @classmethod
    def check_single_line(cls, value: str) -> str:
        return _single_line(value)


class RankedEntry(BaseModel):
    # Rank is positional, it is not stored
    username: str
    model_size_mb: float = Field(ge=0)
    size_score: float = Field(ge=0)
    latency_ms: float = Field(ge=0)
    latency_score: float = Field(ge=0)
    accuracy_pct: float = Field(ge=0)
    accuracy_score: float = Field(ge=0)
    total_score: float = Field(ge=0)
    submission_date: str

    @field_validator(
        "model_size_mb", "size_score", "latency_ms", "latency_score",
        "accuracy_pct", "accuracy_score", "total_score",
    )
    @classmethod
    def displayed_precision(cls, value: float) -> float:
        return round(value, SCORE_DECIMALS)

    @property
    def is_baseline(self) -> bool:
        return self.username == BASELINE_USERNAME

    def to_baseline(self) -> Baseline:
        return Baseline(
            size_mb=self.model_size_mb,
            latency_ms=self.latency_ms,
            accuracy_pct=self.accuracy_pct,
        )

    @staticmethod
    def for_baseline(model_size_mb: float, latency_ms: float, accuracy_pct: float) -> "RankedEntry":
        return RankedEntry(
            username=BASELINE_USERNAME,
            model_size_mb=model_size_mb,
            size_score=1.0,
            latency_ms=latency_ms,
            latency_score=1.0,
            accuracy_pct=accuracy_pct,
            accuracy_score=1.0,
            total_score=1.0,
            submission_date=NOT_AVAILABLE,
        )

    @staticmethod
    def from_result(result: SubmissionResult, scores: ScoreCard) -> "RankedEntry":
        return RankedEntry(
            username=result.username,
            model_size_mb=result.model_size_mb,
            size_score=scores.size_score,
            latency_ms=result.latency_ms,
            latency_score=scores.latency_score,
            accuracy_pct=result.accuracy_pct,
            accuracy_score=scores.accuracy_score,
            total_score=result.total_score,
            submission_date=result.submission_date,
        )


class ArchiveEntry(BaseModel):
    username: str
    model_size_mb: float = Field(ge=0)
    latency_ms: float = Field(ge=0)
    accuracy_pct: float = Field(ge=0)
    total_score: float = Field(ge=0)
    submission_date: str
    notes: str = ""

    @field_validator("model_size_mb", "latency_ms", "accuracy_pct", "total_score")
    @classmethod
    def displayed_precision(cls, value: float) -> float:
        return round(value, SCORE_DECIMALS)

    @staticmethod
    def from_result(result: SubmissionResult) -> "ArchiveEntry":
        return ArchiveEntry(
            username=result.username,
            model_size_mb=result.model_size_mb,
            latency_ms=result.latency_ms,
            accuracy_pct=result.accuracy_pct,
            total_score=result.total_score,
            submission_date=result.submission_date,
            notes=result.notes,
        )
