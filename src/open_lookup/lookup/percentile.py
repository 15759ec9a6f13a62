"""Percentile lookup: normalize, anchor, search, resolve ties, estimate.

``lookup_percentile`` never raises. Every failure along the way, whether bad
input, remote errors or a search dead end, comes back as a ``LookupResult``
with ``match_type == "error"`` and the message in ``debug.error``.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Optional

import requests

from open_lookup.classes.leaderboard_client import LeaderboardClient
from open_lookup.classes.match import BracketMatch, ExactMatch, MatchResult, is_edge
from open_lookup.classes.models import (
    FetchPage,
    LookupCache,
    LookupConfig,
    LookupDebug,
    LookupResult,
    MatchDetails,
    PercentileRange,
    RankRange,
)
from open_lookup.classes.workout import WorkoutMetadata
from open_lookup.config import LookupSettings

from .anchors import build_anchor_map, find_bracket_from_anchors
from .cluster import find_exact_score_cluster, rank_within_cluster, refine_match_with_adjacent_pages
from .fetch import create_cache, requests_fetch_page
from .normalize import normalize_user_score, round_half_up
from .search import binary_search_for_page, find_match_on_page, interpolate_rank

logger = logging.getLogger(__name__)

MIN_PERCENTILE = 0.1
MAX_PERCENTILE = 100.0


@dataclass(frozen=True)
class PercentileEstimate:
    percentile: float
    estimated_rank: int
    percentile_range: PercentileRange | None = None
    rank_range: RankRange | None = None


def percentile_from_rank(rank: int, total_competitors: int) -> float:
    """Share of the field at or below ``rank``, one decimal, within [0.1, 100]."""
    raw = round_half_up((total_competitors - rank + 1) / total_competitors * 1000) / 10
    return min(MAX_PERCENTILE, max(MIN_PERCENTILE, raw))


def clamp_rank(rank: int, total_competitors: int) -> int:
    return max(1, min(rank, total_competitors))


def calculate_percentile(
    match: MatchResult,
    normalized_score: int,
    total_competitors: int,
    user_tiebreak_seconds: int | None = None,
) -> PercentileEstimate:
    rank_range: RankRange | None = None

    if isinstance(match, ExactMatch):
        rank, rank_range = rank_within_cluster(match, user_tiebreak_seconds)
    elif match.bracket_above is not None and match.bracket_below is not None:
        rank = interpolate_rank(normalized_score, match.bracket_above, match.bracket_below)
        best, worst = match.bracket_above.rank + 1, match.bracket_below.rank - 1
        if best <= worst:
            rank_range = RankRange(best, worst)
    elif match.bracket_above is not None:
        rank = match.bracket_above.rank + 1
    elif match.bracket_below is not None:
        rank = match.bracket_below.rank - 1
    else:
        rank = round_half_up(total_competitors / 2)

    rank = clamp_rank(rank, total_competitors)
    percentile = percentile_from_rank(rank, total_competitors)

    percentile_range: PercentileRange | None = None
    if rank_range is not None:
        rank_range = RankRange(
            clamp_rank(rank_range.best, total_competitors),
            clamp_rank(rank_range.worst, total_competitors),
        )
        percentile_range = PercentileRange(
            best=percentile_from_rank(rank_range.best, total_competitors),
            worst=percentile_from_rank(rank_range.worst, total_competitors),
        )

    return PercentileEstimate(
        percentile=percentile,
        estimated_rank=rank,
        percentile_range=percentile_range,
        rank_range=rank_range,
    )


def default_fetch_page(settings: LookupSettings) -> FetchPage:
    return partial(requests_fetch_page, base_url=settings.api_base_url, timeout=settings.timeout_sec)


def _error_result(message: str, debug: LookupDebug, cache: LookupCache | None) -> LookupResult:
    debug.error = message
    return LookupResult(
        success=False,
        percentile=None,
        estimated_rank=None,
        total_competitors=cache.total_competitors if cache else 0,
        match_type="error",
        api_calls_made=cache.api_calls if cache else 0,
        debug=debug,
    )


def lookup_percentile(
    config: LookupConfig,
    user_score: str,
    workout: WorkoutMetadata,
    *,
    fetch_page: Optional[FetchPage] = None,
    settings: Optional[LookupSettings] = None,
) -> LookupResult:
    """Estimate the percentile and rank of ``user_score`` on one workout leaderboard."""
    settings = settings or LookupSettings()
    debug = LookupDebug()
    cache: LookupCache | None = None

    try:
        cache = create_cache(config, workout, fetch_page=fetch_page or default_fetch_page(settings), region=settings.region)

        normalized = normalize_user_score(user_score, workout)
        if normalized is None:
            return _error_result(f"Failed to normalize score: {user_score!r}", debug, cache)
        debug.normalized_score = normalized.raw

        anchors = build_anchor_map(config, cache)
        debug.anchors_used = len(anchors)
        if not anchors:
            return _error_result("No anchors built", debug, cache)

        bracket = find_bracket_from_anchors(normalized.raw, anchors)
        if bracket is None:
            return _error_result("Could not find bracket from anchors", debug, cache)
        debug.bracket_found = bracket

        search = binary_search_for_page(normalized.raw, bracket.low_page, bracket.high_page, config, cache)
        debug.pages_searched.extend(search.pages_searched)

        match_page = search.page
        match = find_match_on_page(normalized.raw, search.page_data)
        if is_edge(match):
            refined = refine_match_with_adjacent_pages(normalized.raw, match_page, match, config, cache)
            match, match_page = refined.match, refined.page
            debug.pages_searched.extend(refined.additional_pages)

        if isinstance(match, (ExactMatch, BracketMatch)):
            cluster = find_exact_score_cluster(
                normalized.raw,
                match_page,
                match,
                config,
                cache,
                max_pages_to_scan=settings.cluster_scan_pages,
            )
            match = cluster.match
            debug.pages_searched.extend(cluster.additional_pages)
            debug.cluster_complete = cluster.complete

        debug.match_details = MatchDetails(
            page=match_page,
            matching_ranks=list(match.ranks) if isinstance(match, ExactMatch) else None,
            bracket_above=match.bracket_above,
            bracket_below=match.bracket_below,
        )

        estimate = calculate_percentile(match, normalized.raw, cache.total_competitors, config.tiebreak_seconds)
        logger.debug(
            "%s: score %s -> rank %d of %d (%.1f%%) in %d calls",
            workout.name,
            normalized.display,
            estimate.estimated_rank,
            cache.total_competitors,
            estimate.percentile,
            cache.api_calls,
        )
        return LookupResult(
            success=True,
            percentile=estimate.percentile,
            estimated_rank=estimate.estimated_rank,
            total_competitors=cache.total_competitors,
            match_type="exact" if isinstance(match, ExactMatch) else "bracket",
            api_calls_made=cache.api_calls,
            percentile_range=estimate.percentile_range,
            rank_range=estimate.rank_range,
            debug=debug,
        )
    except Exception as exc:
        logger.warning("percentile lookup failed for %s score=%r: %s", workout.name, user_score, exc)
        return _error_result(str(exc) or exc.__class__.__name__, debug, cache)


def quick_lookup(
    year: int,
    division: int,
    workout_ordinal: int,
    user_score: str,
    workout: WorkoutMetadata,
    scaled: int = 0,
    *,
    fetch_page: Optional[FetchPage] = None,
) -> dict[str, Any]:
    """Percentile and rank only, as a small dict."""
    result = lookup_percentile(
        LookupConfig(year=year, division=division, scaled=scaled, workout_ordinal=workout_ordinal),
        user_score,
        workout,
        fetch_page=fetch_page,
    )
    if not result.success:
        return {"percentile": None, "rank": None, "error": result.error}
    return {"percentile": result.percentile, "rank": result.estimated_rank}


LookupRequest = tuple[LookupConfig, str, WorkoutMetadata]


def lookup_many(
    lookups: Sequence[LookupRequest],
    *,
    client: Optional[LeaderboardClient] = None,
    settings: Optional[LookupSettings] = None,
    max_workers: int = 4,
) -> list[LookupResult]:
    """Run independent lookups concurrently; results come back in input order.

    Each lookup gets its own cache and, when ``client`` is given, its own
    requests.Session carrying the client's headers.
    """
    settings = settings or LookupSettings()

    def run_one(request: LookupRequest) -> LookupResult:
        config, user_score, workout = request
        if client is None:
            return lookup_percentile(config, user_score, workout, settings=settings)
        with requests.Session() as session:
            client.clone_to(session)
            fetch = partial(client.fetch_page, session=session)
            return lookup_percentile(config, user_score, workout, fetch_page=fetch, settings=settings)

    if not lookups:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(lookups)))) as pool:
        return list(pool.map(run_one, lookups))
