from enum import IntEnum


class ProcessErrorCode(IntEnum):
    ArtifactNotValid = 101
    DatasetNotValid = 102
    MeasurementFailed = 103
    LeaderboardNotParsable = 104
    ReadWriteFailed = 105
