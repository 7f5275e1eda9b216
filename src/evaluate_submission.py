import argparse
import logging
import os
import pathlib
import sys

from prettytable import PrettyTable
from termcolor import colored

from compression_leaderboard.benchmarker.benchmarker import Benchmarker
from compression_leaderboard.configuration import Configuration
from compression_leaderboard.errors import LeaderboardError, exit_code_for
from compression_leaderboard.evaluator import EvaluationResult, evaluate, tf_dataset_factory
from compression_leaderboard.log_utils import level_from_name, setup_logger
from compression_leaderboard.result_sink import GithubOutputSink, JsonResultSink, MultiSink
from compression_leaderboard.scoring import ScoreWeights

logger = logging.getLogger("compression_leaderboard")


def build_parser(configuration: Configuration) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leaderboard-evaluate",
        description="Evaluate a compressed model submission against the baseline",
    )
    parser.add_argument("--config", type=str, help="Path of config.ini", required=False)
    parser.add_argument(
        "--submission_dir",
        type=pathlib.Path,
        help="Folder with model.<ext> and metadata.json, ex: submissions/<username>",
        required=True,
    )
    parser.add_argument(
        "--data_dir",
        type=pathlib.Path,
        help="Validation images, one folder per class",
        required=True,
    )
    parser.add_argument(
        "--baseline_size",
        type=float,
        help="Baseline model size in MB",
        default=configuration.get_float("baseline", "size_mb"),
    )
    parser.add_argument(
        "--baseline_latency",
        type=float,
        help="Baseline latency in ms",
        default=configuration.get_float("baseline", "latency_ms"),
    )
    parser.add_argument(
        "--baseline_accuracy",
        type=float,
        help="Baseline accuracy in %%",
        default=configuration.get_float("baseline", "accuracy_pct"),
    )
    parser.add_argument(
        "--output_file",
        type=pathlib.Path,
        help="JSON file receiving the result (default evaluation_result.json)",
        default=pathlib.Path("evaluation_result.json"),
    )
    parser.add_argument(
        "--kaggle_dataset",
        type=str,
        help="Kaggle dataset downloaded into --data_dir when it is empty, ex: owner/dataset",
        default=os.environ.get("KAGGLE_DATASET"),
    )
    parser.add_argument(
        "--batch",
        type=int,
        help="Images per inference call (default 1)",
        default=configuration.get_int("evaluation", "batch_size"),
    )
    parser.add_argument(
        "--latency_samples",
        type=int,
        help="Images used to measure latency (default all)",
        default=configuration.get_int("evaluation", "latency_samples"),
    )
    parser.add_argument(
        "--log_file",
        type=str,
        help="Append logs to this file",
        default=configuration.getConfig("logging", "file") or None,
    )
    return parser


def print_summary(result: EvaluationResult) -> None:
    print()
    table = PrettyTable(["Metric", "Value", "Score"])
    table.add_row(["Model Size (MB)", f"{result.model_size:.2f}", f"{result.size_score:.4f}"])
    table.add_row(["Latency (ms)", f"{result.latency:.2f}", f"{result.latency_score:.4f}"])
    table.add_row(["Accuracy (%)", f"{result.accuracy:.2f}", f"{result.accuracy_score:.4f}"])
    print(table)
    color = "green" if result.total_score >= 1 else "yellow"
    print(f"TOTAL SCORE: {colored(f'{result.total_score:.2f}', color, attrs=['bold'])}")


def main(argv=None) -> int:
    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", type=str, default=None)
    known, _ = pre_parser.parse_known_args(argv)
    configuration = Configuration(known.config)

    args = build_parser(configuration).parse_args(argv)
    setup_logger(
        "compression_leaderboard",
        args.log_file,
        level_from_name(configuration.getConfig("logging", "level")),
    )
    logger.info(f"EVALUATING {args.submission_dir}")

    try:
        benchmarker = Benchmarker(
            batch_size=args.batch,
            warmup_runs=configuration.get_int("evaluation", "warmup_runs"),
            latency_samples=args.latency_samples,
        )
        result = evaluate(
            args.submission_dir,
            args.data_dir,
            args.baseline_size,
            args.baseline_latency,
            args.baseline_accuracy,
            dataset_factory=tf_dataset_factory(configuration, args.kaggle_dataset),
            benchmarker=benchmarker,
            sink=MultiSink(JsonResultSink(args.output_file), GithubOutputSink()),
            weights=ScoreWeights.from_configuration(configuration),
            callback=Benchmarker.OfflineProgressBar() if sys.stdout.isatty() else None,
        )
    except (LeaderboardError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return exit_code_for(e)
    except ValueError as e:
        logger.error(f"Invalid arguments: {e}")
        return 2

    print_summary(result)
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
