import json
import logging
import os

from pydantic import BaseModel

from compression_leaderboard.io_utils import atomic_write_text

logger = logging.getLogger(__name__)

GITHUB_OUTPUT_ENV = "GITHUB_OUTPUT"
GITHUB_OUTPUT_KEYS = ("model_size", "latency", "accuracy", "total_score")


class ResultSink:
    def write(self, result: BaseModel) -> None:
        raise NotImplementedError


class JsonResultSink(ResultSink):
    def __init__(self, output_file) -> None:
        self.output_file = output_file

    def write(self, result: BaseModel) -> None:
        text = json.dumps(result.model_dump(), indent=2) + "\n"
        atomic_write_text(self.output_file, text)
        logger.info(f"Evaluation result written to {self.output_file}")


class GithubOutputSink(ResultSink):
    """Append key=value step outputs to the file named by $GITHUB_OUTPUT"""

    def __init__(self, output_file=None) -> None:
        self.output_file = output_file or os.environ.get(GITHUB_OUTPUT_ENV)

    def write(self, result: BaseModel) -> None:
        if not self.output_file:
            return
        values = result.model_dump()
        with open(self.output_file, "a", encoding="utf-8") as f:
            for key in GITHUB_OUTPUT_KEYS:
                f.write(f"{key}={values[key]}\n")


class MultiSink(ResultSink):
    def __init__(self, *sinks: ResultSink) -> None:
        self.sinks = sinks

    def write(self, result: BaseModel) -> None:
        for sink in self.sinks:
            sink.write(result)
