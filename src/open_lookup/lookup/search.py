"""Binary search over leaderboard pages and per-page score matching."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from open_lookup.classes.match import BracketMatch, EdgeBetter, EdgeWorse, ExactMatch, MatchResult
from open_lookup.classes.models import TO_END, LookupCache, LookupConfig, OverallConfig, PageData, PageRow

from .fetch import fetch_leaderboard_page
from .normalize import round_half_up, score_in_range

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    page: int
    page_data: PageData
    pages_searched: list[int] = field(default_factory=list)


def binary_search_for_page(
    normalized_score: int,
    low_page: int,
    high_page: int,
    config: LookupConfig | OverallConfig,
    cache: LookupCache,
) -> SearchResult:
    """Find the page whose [first_score, last_score] range contains the score.

    When no page contains it (the score falls between two pages) the page at the
    final low boundary is returned as the closest candidate.
    """
    pages_searched: list[int] = []

    if high_page == TO_END:
        high_page = cache.total_pages
    low_page = max(1, low_page)
    high_page = min(high_page, cache.total_pages)

    while low_page <= high_page:
        mid_page = (low_page + high_page) // 2
        page_data = fetch_leaderboard_page(config, mid_page, cache)
        pages_searched.append(mid_page)

        if score_in_range(normalized_score, page_data.first_score, page_data.last_score):
            return SearchResult(page=mid_page, page_data=page_data, pages_searched=pages_searched)

        if normalized_score < page_data.first_score:
            high_page = mid_page - 1
        else:
            low_page = mid_page + 1

    boundary_page = max(1, min(low_page, cache.total_pages))
    logger.debug("score %d not inside any page; using boundary page %d", normalized_score, boundary_page)
    page_data = fetch_leaderboard_page(config, boundary_page, cache)
    pages_searched.append(boundary_page)
    return SearchResult(page=boundary_page, page_data=page_data, pages_searched=pages_searched)


def find_match_on_page(normalized_score: int, page_data: PageData) -> MatchResult:
    """Classify the rows of one page relative to the score."""
    ranks: list[int] = []
    tiebreaks: list[int | None] = []
    bracket_above: PageRow | None = None
    bracket_below: PageRow | None = None

    for row in page_data.rows:
        if row.score_normalized == normalized_score:
            ranks.append(row.rank)
            tiebreaks.append(row.tiebreak_seconds)
        elif row.score_normalized < normalized_score:
            # closest better row wins
            bracket_above = row
        elif bracket_below is None:
            bracket_below = row

    if ranks:
        return ExactMatch(
            ranks=tuple(ranks),
            tiebreaks=tuple(tiebreaks),
            bracket_above=bracket_above,
            bracket_below=bracket_below,
        )
    if bracket_above is not None and bracket_below is not None:
        return BracketMatch(bracket_above=bracket_above, bracket_below=bracket_below)
    if bracket_below is not None:
        return EdgeBetter(bracket_below=bracket_below)
    if bracket_above is not None:
        return EdgeWorse(bracket_above=bracket_above)
    return BracketMatch()


def interpolate_rank(normalized_score: int, bracket_above: PageRow, bracket_below: PageRow) -> int:
    """Linear rank estimate between two bracketing rows (assumes uniform density)."""
    score_range = bracket_below.score_normalized - bracket_above.score_normalized
    rank_range = bracket_below.rank - bracket_above.rank

    if score_range == 0:
        return round_half_up((bracket_above.rank + bracket_below.rank) / 2)

    score_offset = normalized_score - bracket_above.score_normalized
    return round_half_up(bracket_above.rank + (score_offset / score_range) * rank_range)
