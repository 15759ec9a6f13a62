from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from open_lookup.classes.leaderboard_client import LeaderboardClient
from open_lookup.classes.models import LookupConfig, OverallConfig
from open_lookup.config import LookupSettings
from open_lookup.lookup.normalize import parse_tiebreak_time
from open_lookup.lookup.overall import lookup_overall_by_points
from open_lookup.lookup.percentile import lookup_percentile
from open_lookup.workouts import get_workout_metadata

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LOOKUP_ERROR = 1
EXIT_INVALID_ARGS = 2


def _emit(payload: dict[str, Any], out: TextIO | None) -> None:
    out = out or sys.stdout
    out.write(json.dumps(payload, indent=2, sort_keys=True))
    out.write("\n")


def _client_for(settings: LookupSettings) -> LeaderboardClient:
    return LeaderboardClient(base_url=settings.api_base_url, timeout_sec=settings.timeout_sec)


def run_score_lookup(args: Any, settings: LookupSettings, *, out: TextIO | None = None) -> int:
    workout = get_workout_metadata(args.year, args.workout)
    if workout is None:
        logger.error("no workout metadata for %d.%d", args.year, args.workout)
        return EXIT_INVALID_ARGS

    tiebreak_seconds = None
    if args.tiebreak:
        tiebreak_seconds = parse_tiebreak_time(args.tiebreak)
        if tiebreak_seconds is None:
            logger.error("invalid tiebreak time %r; expected M:SS", args.tiebreak)
            return EXIT_INVALID_ARGS

    config = LookupConfig(
        year=args.year,
        division=args.division,
        scaled=args.scaled,
        workout_ordinal=args.workout,
        tiebreak_seconds=tiebreak_seconds,
    )
    client = _client_for(settings)
    try:
        result = lookup_percentile(config, args.score, workout, fetch_page=client.fetch_page, settings=settings)
    finally:
        client.session.close()

    _emit(result.to_dict(include_debug=args.debug or not result.success), out)
    if not result.success:
        logger.error("lookup failed: %s", result.error)
        return EXIT_LOOKUP_ERROR
    logger.info(
        "%s %s: rank %d of %d, %.1f%% (%d calls)",
        workout.name,
        args.score,
        result.estimated_rank,
        result.total_competitors,
        result.percentile,
        result.api_calls_made,
    )
    return EXIT_OK


def run_overall_lookup(args: Any, settings: LookupSettings, *, out: TextIO | None = None) -> int:
    config = OverallConfig(year=args.year, division=args.division, scaled=args.scaled)
    client = _client_for(settings)
    try:
        result = lookup_overall_by_points(config, args.points, fetch_page=client.fetch_page, settings=settings)
    finally:
        client.session.close()

    _emit(result.to_dict(include_debug=args.debug or not result.success), out)
    if not result.success:
        logger.error("overall lookup failed: %s", result.error)
        return EXIT_LOOKUP_ERROR
    logger.info("%d points: overall rank %d of %d", args.points, result.overall_rank, result.total_competitors)
    return EXIT_OK
