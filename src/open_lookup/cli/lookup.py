"""Estimate CrossFit Open percentiles and overall ranks from the command line."""

import argparse
import logging
import sys
from typing import Callable, Sequence

from open_lookup.commands.lookup import EXIT_INVALID_ARGS, run_overall_lookup, run_score_lookup
from open_lookup.config import load_settings
from open_lookup.logging import configure_logging

logger = logging.getLogger(__name__)

MIN_YEAR, MAX_YEAR = 2015, 2030


def _bounded_int(name: str, minimum: int, maximum: int | None = None) -> Callable[[str], int]:
    def parse(raw: str) -> int:
        try:
            value = int(raw)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{name} must be an integer, got {raw!r}") from None
        if value < minimum or (maximum is not None and value > maximum):
            bounds = f"between {minimum} and {maximum}" if maximum is not None else f">= {minimum}"
            raise argparse.ArgumentTypeError(f"{name} must be {bounds}, got {value}")
        return value

    return parse


def _add_leaderboard_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--year", type=_bounded_int("year", MIN_YEAR, MAX_YEAR), required=True)
    parser.add_argument("--division", type=_bounded_int("division", 1, 25), required=True)
    parser.add_argument(
        "--scaled",
        type=_bounded_int("scaled", 0, 2),
        default=0,
        help="0=RX, 1=Scaled, 2=Foundations",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="open-lookup", description=__doc__)
    parser.add_argument("-q", "--quiet", action="store_true", help="Decrease verbosity")
    parser.add_argument("--debug", action="store_true", help="Include the debug block in the output")
    subparsers = parser.add_subparsers(dest="command", required=True)

    score = subparsers.add_parser("score", help="Percentile for a workout score")
    _add_leaderboard_args(score)
    score.add_argument("--workout", type=_bounded_int("workout", 1, 10), required=True, help="Workout ordinal")
    score.add_argument("--score", required=True, help="e.g. 9:02, 136, 5+12, 225 lb")
    score.add_argument("--tiebreak", help="Tiebreak time as M:SS")

    overall = subparsers.add_parser("overall", help="Overall rank for a points total")
    _add_leaderboard_args(overall)
    overall.add_argument("--points", type=_bounded_int("points", 1), required=True)
    return parser


def _init_runtime() -> None:
    """Initialize runtime-only side effects for CLI execution."""
    configure_logging()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _init_runtime()
    if args.quiet:
        logging.getLogger().setLevel(logging.WARNING)

    try:
        settings = load_settings()
    except ValueError as exc:
        logger.error("%s", exc)
        return EXIT_INVALID_ARGS

    if args.command == "score":
        return run_score_lookup(args, settings)
    return run_overall_lookup(args, settings)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
