import argparse
import json
import logging
import pathlib
import sys

from termcolor import colored

from compression_leaderboard.configuration import Configuration
from compression_leaderboard.errors import LeaderboardError, exit_code_for
from compression_leaderboard.leaderboard.submission_result import SubmissionResult, utc_now
from compression_leaderboard.leaderboard.updater import init_leaderboard, update_leaderboard
from compression_leaderboard.log_utils import level_from_name, setup_logger
from compression_leaderboard.scoring import Baseline, ScoreWeights

logger = logging.getLogger("compression_leaderboard")


def build_parser(configuration: Configuration) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leaderboard-update",
        description="Merge an evaluation result into the leaderboard document",
    )
    parser.add_argument("--config", type=str, help="Path of config.ini", required=False)
    parser.add_argument("--username", type=str, help="Submitter username")
    parser.add_argument("--model_size", type=float, help="Model size in MB")
    parser.add_argument("--latency", type=float, help="Latency in ms")
    parser.add_argument("--accuracy", type=float, help="Accuracy in %%")
    parser.add_argument("--total_score", type=float, help="Total score computed by the evaluator")
    parser.add_argument(
        "--result_file",
        type=pathlib.Path,
        help="Evaluation JSON written by leaderboard-evaluate, replaces the four metrics",
        default=None,
    )
    parser.add_argument(
        "--submission_date",
        type=str,
        help="Submission timestamp (default now, ex: 2025-03-01 12:00:00 UTC)",
        default=None,
    )
    parser.add_argument("--notes", type=str, help="Free text stored in the archive", default="")
    parser.add_argument(
        "--leaderboard_file",
        type=pathlib.Path,
        help="Markdown leaderboard",
        default=pathlib.Path(configuration.getConfig("leaderboard", "path")),
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the leaderboard with the baseline row when it does not exist",
    )
    parser.add_argument(
        "--lock_timeout",
        type=float,
        help="Seconds to wait for concurrent updates (default 300)",
        default=configuration.get_float("leaderboard", "lock_timeout"),
    )
    parser.add_argument(
        "--log_file",
        type=str,
        help="Append logs to this file",
        default=configuration.getConfig("logging", "file") or None,
    )
    return parser


def result_from_args(args) -> SubmissionResult:
    values = {
        "model_size": args.model_size,
        "latency": args.latency,
        "accuracy": args.accuracy,
        "total_score": args.total_score,
    }
    notes = args.notes
    if args.result_file is not None:
        with open(args.result_file, "r", encoding="utf-8") as f:
            evaluation = json.load(f)
        for key in values:
            if values[key] is None:
                values[key] = evaluation.get(key)
        if not notes:
            notes = evaluation.get("notes", "")

    missing = [f"--{k}" for k, v in values.items() if v is None]
    if args.username is None:
        missing.insert(0, "--username")
    if missing:
        raise ValueError(f"missing {', '.join(missing)}")

    return SubmissionResult(
        username=args.username,
        model_size_mb=values["model_size"],
        latency_ms=values["latency"],
        accuracy_pct=values["accuracy"],
        total_score=values["total_score"],
        submission_date=args.submission_date or utc_now(),
        notes=notes or "",
    )


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

    try:
        weights = ScoreWeights.from_configuration(configuration)
        if args.init:
            init_leaderboard(
                args.leaderboard_file,
                Baseline.from_configuration(configuration),
                lock_timeout=args.lock_timeout,
                weights=weights,
            )
            if args.username is None:
                return 0
        result = result_from_args(args)
        logger.info(f"UPDATING {args.leaderboard_file} with {result.username}")
        document = update_leaderboard(
            result, args.leaderboard_file, lock_timeout=args.lock_timeout, weights=weights
        )
    except (LeaderboardError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return exit_code_for(e)
    except ValueError as e:
        logger.error(f"Invalid arguments: {e}")
        return 2

    index = document.find(result.username)
    if index is not None:
        print(f"{result.username} is now {colored(f'#{index + 1}', 'green', attrs=['bold'])}")
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
