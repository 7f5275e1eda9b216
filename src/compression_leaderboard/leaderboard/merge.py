import logging
from datetime import datetime, timezone
from typing import List

from compression_leaderboard.leaderboard.document import LeaderboardDocument
from compression_leaderboard.leaderboard.submission_result import (
    ArchiveEntry,
    RankedEntry,
    SubmissionResult,
    format_timestamp,
)
from compression_leaderboard.scoring import DEFAULT_WEIGHTS, ScoreWeights, compute_scores

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.01


def rank_entries(entries: List[RankedEntry]) -> List[RankedEntry]:
    # sorted() is stable with reverse=True too: equal totals keep the table order
    return sorted(entries, key=lambda e: e.total_score, reverse=True)


def merge_result(
        document: LeaderboardDocument,
        result: SubmissionResult,
        now: datetime = None,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> LeaderboardDocument:
    """
    Next state of the leaderboard, the given document is not modified
    :param LeaderboardDocument document: current leaderboard
    :param SubmissionResult result: evaluation to merge
    :param datetime now: time written in the Last updated line, default utc now
    :return: new document with the main table re-ranked and the archive grown by one row
    """
    if now is None:
        now = datetime.now(timezone.utc)
    updated = document.copy()
    baseline_entry = document.baseline

    scores = compute_scores(
        result.model_size_mb,
        result.latency_ms,
        result.accuracy_pct,
        baseline_entry.to_baseline(),
        weights,
    )
    if abs(scores.total_score - result.total_score) > TOTAL_TOLERANCE + 1e-9:
        logger.warning(
            f"Total score {result.total_score} of {result.username} differs from "
            + f"{scores.total_score} computed against the leaderboard baseline"
        )

    if result.username == baseline_entry.username:
        logger.warning("The baseline row is immutable, the result is only archived")
    else:
        entry = RankedEntry.from_result(result, scores)
        index = updated.find(result.username)
        if index is None:
            logger.info(f"New leaderboard row for {result.username}")
            updated.entries.append(entry)
        else:
            # A resubmission ranks like a new arrival among equal totals
            logger.info(f"Replacing leaderboard row of {result.username}")
            del updated.entries[index]
            updated.entries.append(entry)

    updated.entries = rank_entries(updated.entries)
    updated.archive.append(ArchiveEntry.from_result(result))
    updated.set_last_updated(format_timestamp(now))
    return updated
