"""Overall rank from total points (sum of an athlete's workout ranks).

Same shape as the workout lookup: anchors, a page bracket, binary search and
interpolation. The sort column is the overall leaderboard and each row is keyed
by its total points, where fewer points is better.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from open_lookup.classes.match import BracketMatch, ExactMatch, is_edge
from open_lookup.classes.models import (
    AnchorPoint,
    FetchPage,
    LookupCache,
    OverallConfig,
    OverallDebug,
    OverallLookupResult,
    PageBracket,
)
from open_lookup.config import LookupSettings

from .anchors import build_anchor_map
from .cluster import find_exact_score_cluster, refine_match_with_adjacent_pages
from .fetch import create_overall_cache
from .percentile import clamp_rank, default_fetch_page, percentile_from_rank
from .search import binary_search_for_page, find_match_on_page, interpolate_rank

logger = logging.getLogger(__name__)

OVERALL_TARGET_PERCENTILES: tuple[float, ...] = (1, 5, 10, 25, 50, 75, 90, 95, 99)

# one page back and a few forward; tied totals are short runs
OVERALL_CLUSTER_SCAN_PAGES = 4


def find_points_bracket(total_points: int, anchors: Sequence[AnchorPoint], total_pages: int) -> PageBracket:
    """Narrow [1, total_pages] using anchor pages wholly better or wholly worse than the target."""
    low_page, high_page = 1, max(1, total_pages)
    for anchor in anchors:
        if anchor.page_data.last_score < total_points:
            low_page = max(low_page, anchor.page)
        if anchor.page_data.first_score > total_points:
            high_page = min(high_page, anchor.page)
    return PageBracket(low_page, high_page)


def _dedupe(pages: Sequence[int]) -> list[int]:
    return list(dict.fromkeys(pages))


def lookup_overall_by_points(
    config: OverallConfig,
    total_points: int,
    *,
    fetch_page: Optional[FetchPage] = None,
    settings: Optional[LookupSettings] = None,
) -> OverallLookupResult:
    settings = settings or LookupSettings()
    debug = OverallDebug(target_points=total_points)
    cache: LookupCache | None = None
    pages_searched: list[int] = []

    def error_result(message: str) -> OverallLookupResult:
        debug.error = message
        debug.pages_searched = _dedupe(pages_searched)
        return OverallLookupResult(
            success=False,
            overall_rank=None,
            overall_percentile=None,
            total_competitors=cache.total_competitors if cache else 0,
            match_type="error",
            api_calls_made=cache.api_calls if cache else 0,
            debug=debug,
        )

    try:
        if total_points < 1:
            return error_result(f"Total points must be positive, got {total_points}")

        cache = create_overall_cache(config, fetch_page=fetch_page or default_fetch_page(settings), region=settings.region)
        anchors = build_anchor_map(config, cache, OVERALL_TARGET_PERCENTILES)
        pages_searched.extend(anchor.page for anchor in anchors)
        if not anchors:
            return error_result("No anchors built")

        bracket = find_points_bracket(total_points, anchors, cache.total_pages)
        search = binary_search_for_page(total_points, bracket.low_page, bracket.high_page, config, cache)
        pages_searched.extend(search.pages_searched)

        match_page = search.page
        match = find_match_on_page(total_points, search.page_data)
        if is_edge(match):
            refined = refine_match_with_adjacent_pages(total_points, match_page, match, config, cache)
            match, match_page = refined.match, refined.page
            pages_searched.extend(refined.additional_pages)
        if isinstance(match, (ExactMatch, BracketMatch)):
            cluster = find_exact_score_cluster(
                total_points, match_page, match, config, cache, max_pages_to_scan=OVERALL_CLUSTER_SCAN_PAGES
            )
            match = cluster.match
            pages_searched.extend(cluster.additional_pages)

        debug.bracket_above = match.bracket_above
        debug.bracket_below = match.bracket_below

        if isinstance(match, ExactMatch):
            rank = match.best_rank
        elif match.bracket_above is not None and match.bracket_below is not None:
            rank = interpolate_rank(total_points, match.bracket_above, match.bracket_below)
        elif match.bracket_above is not None:
            rank = match.bracket_above.rank + 1
        elif match.bracket_below is not None:
            rank = match.bracket_below.rank - 1
        else:
            rank = search.page_data.first_rank

        rank = clamp_rank(rank, cache.total_competitors)
        debug.pages_searched = _dedupe(pages_searched)
        return OverallLookupResult(
            success=True,
            overall_rank=rank,
            overall_percentile=percentile_from_rank(rank, cache.total_competitors),
            total_competitors=cache.total_competitors,
            match_type="exact" if isinstance(match, ExactMatch) else "bracket",
            api_calls_made=cache.api_calls,
            debug=debug,
        )
    except Exception as exc:
        logger.warning("overall lookup failed for %d points: %s", total_points, exc)
        return error_result(str(exc) or exc.__class__.__name__)
