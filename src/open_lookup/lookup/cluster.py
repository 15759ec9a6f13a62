"""Adjacent-page refinement, tie-cluster expansion and tiebreak ranking.

The remote leaderboard reports the worst rank among tied athletes, and tie
groups on large leaderboards can run for dozens of pages (hundreds of athletes
on the same rep count). A single page therefore never proves a cluster is
complete: the scan walks backward to the first tied row and forward to the
first worse row, within fixed page limits. Hitting a limit leaves the cluster
marked incomplete rather than pretending the observed ties are all of them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from open_lookup.classes.match import BracketMatch, EdgeBetter, EdgeWorse, ExactMatch, MatchResult
from open_lookup.classes.models import LookupCache, LookupConfig, OverallConfig, PageRow, RankRange

from .fetch import fetch_leaderboard_page
from .search import find_match_on_page

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES_TO_SCAN = 60
MAX_BACKWARD_PAGES = 10


@dataclass
class RefineResult:
    match: MatchResult
    page: int  # page the match was resolved on
    additional_pages: list[int] = field(default_factory=list)


@dataclass
class ClusterResult:
    match: MatchResult
    additional_pages: list[int] = field(default_factory=list)
    complete: bool = True


def refine_match_with_adjacent_pages(
    normalized_score: int,
    current_page: int,
    match: MatchResult,
    config: LookupConfig | OverallConfig,
    cache: LookupCache,
) -> RefineResult:
    """Look one page past an edge result to turn it into an exact or bracket match."""
    additional_pages: list[int] = []

    if isinstance(match, EdgeBetter) and current_page > 1:
        prev_page = current_page - 1
        prev_match = find_match_on_page(normalized_score, fetch_leaderboard_page(config, prev_page, cache))
        additional_pages.append(prev_page)
        if isinstance(prev_match, (ExactMatch, BracketMatch)):
            return RefineResult(match=prev_match, page=prev_page, additional_pages=additional_pages)
        if prev_match.bracket_above is not None:
            match = BracketMatch(bracket_above=prev_match.bracket_above, bracket_below=match.bracket_below)

    elif isinstance(match, EdgeWorse) and current_page < cache.total_pages:
        next_page = current_page + 1
        next_match = find_match_on_page(normalized_score, fetch_leaderboard_page(config, next_page, cache))
        additional_pages.append(next_page)
        if isinstance(next_match, (ExactMatch, BracketMatch)):
            return RefineResult(match=next_match, page=next_page, additional_pages=additional_pages)
        if next_match.bracket_below is not None:
            match = BracketMatch(bracket_above=match.bracket_above, bracket_below=next_match.bracket_below)

    return RefineResult(match=match, page=current_page, additional_pages=additional_pages)


def _from_brackets(bracket_above: PageRow | None, bracket_below: PageRow | None) -> MatchResult:
    if bracket_above is not None and bracket_below is not None:
        return BracketMatch(bracket_above=bracket_above, bracket_below=bracket_below)
    if bracket_below is not None:
        return EdgeBetter(bracket_below=bracket_below)
    if bracket_above is not None:
        return EdgeWorse(bracket_above=bracket_above)
    return BracketMatch()


def find_exact_score_cluster(
    normalized_score: int,
    start_page: int,
    match: MatchResult,
    config: LookupConfig | OverallConfig,
    cache: LookupCache,
    max_pages_to_scan: int = DEFAULT_MAX_PAGES_TO_SCAN,
) -> ClusterResult:
    """Collect every row tied with the score around ``start_page``.

    Scanning stops backward once the row before the cluster has been seen (at
    most a quarter of ``max_pages_to_scan``, capped at ``MAX_BACKWARD_PAGES``) and forward
    once a worse row has been seen (at most three quarters of it).
    """
    members: list[tuple[int, int | None]] = []
    if isinstance(match, ExactMatch):
        members.extend(zip(match.ranks, match.tiebreaks))

    bracket_above = match.bracket_above
    bracket_below = match.bracket_below
    additional_pages: list[int] = []
    complete = True

    max_backward = max(1, min(max_pages_to_scan // 4, MAX_BACKWARD_PAGES))
    max_forward = max(1, max_pages_to_scan * 3 // 4)

    page = start_page - 1
    scanned = 0
    while bracket_above is None and page >= 1:
        if scanned >= max_backward:
            complete = False
            logger.info("tie cluster scan hit backward limit of %d pages at page %d", max_backward, page + 1)
            break
        page_data = fetch_leaderboard_page(config, page, cache)
        additional_pages.append(page)
        scanned += 1

        found = False
        closest_better: PageRow | None = None
        for row in page_data.rows:
            if row.score_normalized == normalized_score:
                members.append((row.rank, row.tiebreak_seconds))
                found = True
            elif row.score_normalized < normalized_score:
                closest_better = row
        if closest_better is not None:
            bracket_above = closest_better
        if not found:
            break
        page -= 1

    page = start_page + 1
    scanned = 0
    while bracket_below is None and page <= cache.total_pages:
        if scanned >= max_forward:
            complete = False
            logger.info("tie cluster scan hit forward limit of %d pages at page %d", max_forward, page - 1)
            break
        page_data = fetch_leaderboard_page(config, page, cache)
        additional_pages.append(page)
        scanned += 1

        found = False
        for row in page_data.rows:
            if row.score_normalized == normalized_score:
                members.append((row.rank, row.tiebreak_seconds))
                found = True
            elif row.score_normalized > normalized_score and bracket_below is None:
                bracket_below = row
        if not found:
            break
        page += 1

    if members:
        members.sort(key=lambda member: member[0])
        return ClusterResult(
            match=ExactMatch(
                ranks=tuple(rank for rank, _ in members),
                tiebreaks=tuple(tiebreak for _, tiebreak in members),
                bracket_above=bracket_above,
                bracket_below=bracket_below,
            ),
            additional_pages=additional_pages,
            complete=complete,
        )
    return ClusterResult(
        match=_from_brackets(bracket_above, bracket_below),
        additional_pages=additional_pages,
        complete=complete,
    )


def rank_within_cluster(match: ExactMatch, user_tiebreak_seconds: int | None = None) -> tuple[int, RankRange | None]:
    """Estimated rank (and range) of a user tied with ``match``.

    Without a usable tiebreak the user takes the worst rank in the cluster. With
    one, the user sits after every member whose tiebreak is strictly better;
    members with the same tiebreak widen the estimate into a range.
    """
    best_rank, worst_rank = match.best_rank, match.worst_rank
    known = [tiebreak for tiebreak in match.tiebreaks if tiebreak is not None]

    if user_tiebreak_seconds is None or not known:
        rank_range = RankRange(best_rank, worst_rank) if best_rank != worst_rank else None
        return worst_rank, rank_range

    better = sum(1 for tiebreak in known if tiebreak < user_tiebreak_seconds)
    same = sum(1 for tiebreak in known if tiebreak == user_tiebreak_seconds)
    estimated_rank = best_rank + better
    rank_range = RankRange(estimated_rank, estimated_rank + same) if same else None
    return estimated_rank, rank_range
