"""Leaderboard page client and per-lookup page cache.

The remote leaderboard is only readable one rank-sorted page at a time. Pages
are memoized in a ``LookupCache`` that lives for a single lookup; the page
totals learned from page 1 are fixed for the rest of that lookup.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

import requests

from open_lookup.classes.leaderboard_client import DEFAULT_HEADERS, leaderboard_url
from open_lookup.classes.models import (
    DEFAULT_PAGE_SIZE,
    FetchPage,
    LeaderboardQuery,
    LookupCache,
    LookupConfig,
    OverallConfig,
    PageData,
    PageRow,
    RowParser,
)
from open_lookup.classes.workout import WorkoutMetadata
from open_lookup.config import DEFAULT_API_BASE, DEFAULT_TIMEOUT_SEC
from open_lookup.exceptions import EmptyPageError, NoCompetitorsError, RemoteLeaderboardError

from .normalize import normalize_api_score

logger = logging.getLogger(__name__)

OVERALL_SORT = 0

_TIEBREAK = re.compile(r"tiebreak:\s*(\d+):(\d{2})", re.IGNORECASE)


def requests_fetch_page(
    query: LeaderboardQuery,
    *,
    base_url: str = DEFAULT_API_BASE,
    timeout: int = DEFAULT_TIMEOUT_SEC,
) -> dict[str, Any]:
    """Default page fetch using a plain requests.get call."""
    response = requests.get(
        leaderboard_url(query.year, base_url),
        params=query.to_params(),
        headers=DEFAULT_HEADERS,
        timeout=timeout,
    )
    if not response.ok:
        raise RemoteLeaderboardError(response.status_code, response.reason or "")
    return response.json()


def parse_tiebreak_from_breakdown(breakdown: str | None) -> int | None:
    """Extract ``Tiebreak: M:SS`` (or ``HH:MM``) from a score breakdown, in seconds."""
    if not breakdown:
        return None
    match = _TIEBREAK.search(breakdown)
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def _parse_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def workout_row_parser(workout_ordinal: int, workout: WorkoutMetadata) -> RowParser:
    """Build a parser that turns a page payload into rows for one workout column."""

    def parse(payload: dict[str, Any]) -> list[PageRow]:
        rows: list[PageRow] = []
        for entry in payload.get("leaderboardRows") or []:
            score = next(
                (s for s in entry.get("scores") or [] if _parse_int(s.get("ordinal")) == workout_ordinal),
                None,
            )
            # athletes without a score for this workout
            if not score or not score.get("scoreDisplay"):
                continue
            rank = _parse_int(score.get("rank"))
            if rank is None:
                continue
            normalized = normalize_api_score(score["scoreDisplay"], workout)
            if normalized is None:
                logger.debug("unparseable scoreDisplay %r at rank %d", score["scoreDisplay"], rank)
                continue
            rows.append(
                PageRow(
                    rank=rank,
                    score_display=score["scoreDisplay"],
                    score_normalized=normalized.raw,
                    athlete_id=str((entry.get("entrant") or {}).get("competitorId") or ""),
                    tiebreak_seconds=parse_tiebreak_from_breakdown(score.get("breakdown")),
                )
            )
        return rows

    return parse


def overall_points_row_parser(payload: dict[str, Any]) -> list[PageRow]:
    """Rows keyed by total points (sum of workout ranks); incomplete athletes are skipped."""
    rows: list[PageRow] = []
    for entry in payload.get("leaderboardRows") or []:
        overall_rank = _parse_int(entry.get("overallRank"))
        if overall_rank is None:
            continue

        scores = entry.get("scores") or []
        ranks = [_parse_int(score.get("rank")) for score in scores]
        if not ranks or any(rank is None or rank <= 0 for rank in ranks):
            continue
        total_points = sum(ranks)

        rows.append(
            PageRow(
                rank=overall_rank,
                score_display=str(total_points),
                score_normalized=total_points,
                athlete_id=str((entry.get("entrant") or {}).get("competitorId") or ""),
            )
        )
    return rows


def create_cache(
    config: LookupConfig,
    workout: WorkoutMetadata,
    *,
    fetch_page: FetchPage = requests_fetch_page,
    region: int = 0,
) -> LookupCache:
    """Create a fresh cache for one workout percentile lookup."""
    return LookupCache(
        config=config,
        sort=config.workout_ordinal,
        fetch_page=fetch_page,
        parse_rows=workout_row_parser(config.workout_ordinal, workout),
        region=region,
    )


def create_overall_cache(
    config: OverallConfig,
    *,
    fetch_page: FetchPage = requests_fetch_page,
    region: int = 0,
) -> LookupCache:
    """Create a fresh cache for one overall-rank-by-points lookup."""
    return LookupCache(
        config=config,
        sort=OVERALL_SORT,
        fetch_page=fetch_page,
        parse_rows=overall_points_row_parser,
        region=region,
    )


def fetch_leaderboard_page(config: LookupConfig | OverallConfig, page: int, cache: LookupCache) -> PageData:
    """Return page ``page``, fetching it only if this lookup has not seen it yet."""
    cached = cache.pages.get(page)
    if cached is not None:
        logger.debug("page %d served from lookup cache", page)
        return cached

    query = cache.query_for(page)
    cache.api_calls += 1
    logger.debug(
        "fetching %d division=%d scaled=%d sort=%d page=%d",
        config.year,
        config.division,
        config.scaled,
        query.sort,
        page,
    )
    payload = cache.fetch_page(query)

    leaderboard_rows = payload.get("leaderboardRows") or []
    if page == 1:
        pagination = payload.get("pagination") or {}
        cache.record_totals(
            total_competitors=_parse_int(pagination.get("totalCompetitors")) or 0,
            total_pages=_parse_int(pagination.get("totalPages")) or 0,
            page_size=len(leaderboard_rows) or DEFAULT_PAGE_SIZE,
        )

    if not leaderboard_rows:
        raise EmptyPageError(page, f"No rows returned on page {page}")

    rows = cache.parse_rows(payload)
    if not rows:
        raise EmptyPageError(page, f"No scores found on page {page} for sort column {query.sort}")

    page_data = PageData.from_rows(page, rows)
    cache.pages[page] = page_data
    return page_data


def initialize_cache(config: LookupConfig | OverallConfig, cache: LookupCache) -> None:
    """Fetch page 1 so the cache knows the leaderboard totals."""
    fetch_leaderboard_page(config, 1, cache)
    if cache.total_competitors <= 0:
        raise NoCompetitorsError("No competitors found")


def rank_to_page(rank: int, page_size: int) -> int:
    return math.ceil(rank / page_size)


def percentile_to_rank(percentile: float, total_competitors: int) -> int:
    return max(1, math.ceil(percentile * total_competitors / 100))


def get_api_call_count(cache: LookupCache) -> int:
    """Remote calls attempted so far, including failed ones."""
    return cache.api_calls
