from compression_leaderboard.process_error_code import ProcessErrorCode


class LeaderboardError(Exception):
    """Base class of every error that aborts an evaluation or update job"""

    error_code: ProcessErrorCode = ProcessErrorCode.ReadWriteFailed


class ArtifactError(LeaderboardError):
    """The submission has no model artifact, or more than one"""

    error_code = ProcessErrorCode.ArtifactNotValid


class DatasetError(LeaderboardError):
    """The validation dataset is missing, empty or unreadable"""

    error_code = ProcessErrorCode.DatasetNotValid


class MetricError(LeaderboardError):
    """Latency or accuracy could not be measured"""

    error_code = ProcessErrorCode.MeasurementFailed


class ParseError(LeaderboardError):
    """The leaderboard document does not have the expected table structure"""

    error_code = ProcessErrorCode.LeaderboardNotParsable


class LockTimeout(LeaderboardError, OSError):
    """Another job held the leaderboard lock for too long"""

    error_code = ProcessErrorCode.ReadWriteFailed


def exit_code_for(error: BaseException) -> int:
    if isinstance(error, LeaderboardError):
        return int(error.error_code)
    if isinstance(error, OSError):
        return int(ProcessErrorCode.ReadWriteFailed)
    return 1
