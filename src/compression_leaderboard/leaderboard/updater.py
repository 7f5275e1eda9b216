import logging
import os
from datetime import datetime

from compression_leaderboard.io_utils import FileLock, atomic_write_text
from compression_leaderboard.leaderboard.document import LeaderboardDocument
from compression_leaderboard.leaderboard.merge import merge_result
from compression_leaderboard.leaderboard.submission_result import SubmissionResult
from compression_leaderboard.scoring import DEFAULT_WEIGHTS, Baseline, ScoreWeights

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 300
LOCK_SUFFIX = ".lock"


def lock_for(leaderboard_path, timeout: float = DEFAULT_LOCK_TIMEOUT) -> FileLock:
    return FileLock(f"{leaderboard_path}{LOCK_SUFFIX}", timeout=timeout)


def read_leaderboard(leaderboard_path) -> LeaderboardDocument:
    with open(leaderboard_path, "r", encoding="utf-8") as f:
        return LeaderboardDocument.parse(f.read())


def update_leaderboard(
        result: SubmissionResult,
        leaderboard_path,
        now: datetime = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> LeaderboardDocument:
    """
    Merge one result into the leaderboard file.
    The read-merge-write cycle runs under an exclusive lock and the file is
    replaced atomically, on failure it is left untouched
    """
    with lock_for(leaderboard_path, lock_timeout):
        document = read_leaderboard(leaderboard_path)
        updated = merge_result(document, result, now, weights)
        atomic_write_text(leaderboard_path, updated.render())
    rank = updated.find(result.username)
    if rank is not None:
        logger.info(f"{result.username} ranked {rank + 1} of {len(updated.entries)}")
    logger.info(f"Leaderboard {leaderboard_path} updated, {len(updated.archive)} archived submissions")
    return updated


def init_leaderboard(
        leaderboard_path,
        baseline: Baseline,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
        weights: ScoreWeights = DEFAULT_WEIGHTS,
) -> bool:
    """
    Create a leaderboard with only the baseline row
    :return: False when the file already exists, it is never overwritten
    """
    with lock_for(leaderboard_path, lock_timeout):
        if os.path.exists(leaderboard_path):
            logger.info(f"Leaderboard {leaderboard_path} already exists")
            return False
        atomic_write_text(leaderboard_path, LeaderboardDocument.new(baseline, weights).render())
    logger.info(f"Leaderboard {leaderboard_path} created")
    return True
