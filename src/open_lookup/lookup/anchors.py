"""Anchor sampling for the percentile lookup.

Anchors are pages fetched at fixed percentile positions. Together they give a
coarse score-to-rank map that narrows the binary search to a few pages.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from open_lookup.classes.models import TO_END, AnchorPoint, LookupCache, LookupConfig, OverallConfig, PageBracket

from .fetch import fetch_leaderboard_page, initialize_cache, percentile_to_rank, rank_to_page

logger = logging.getLogger(__name__)

# finer near the extremes, where small score changes move the percentile most
TARGET_PERCENTILES: tuple[float, ...] = (1, 5, 10, 20, 30, 40, 50, 60, 70, 80, 90, 95, 99)


def build_anchor_map(
    config: LookupConfig | OverallConfig,
    cache: LookupCache,
    percentiles: Sequence[float] = TARGET_PERCENTILES,
) -> list[AnchorPoint]:
    """Fetch one page per distinct target page and return anchors sorted by percentile."""
    if not cache.totals_recorded:
        initialize_cache(config, cache)

    page_targets: dict[int, list[tuple[float, int]]] = {}
    for percentile in percentiles:
        target_rank = percentile_to_rank(percentile, cache.total_competitors)
        page = rank_to_page(target_rank, cache.page_size)
        if cache.total_pages:
            page = min(page, cache.total_pages)
        page_targets.setdefault(page, []).append((percentile, target_rank))

    anchors: list[AnchorPoint] = []
    for page, targets in page_targets.items():
        try:
            page_data = fetch_leaderboard_page(config, page, cache)
        except Exception:
            logger.warning("failed to fetch anchor page %d; continuing without it", page, exc_info=True)
            continue
        for percentile, target_rank in targets:
            anchors.append(AnchorPoint(percentile=percentile, target_rank=target_rank, page=page, page_data=page_data))

    anchors.sort(key=lambda anchor: anchor.percentile)
    cache.anchors = anchors
    logger.debug("built %d anchors over %d pages", len(anchors), len({a.page for a in anchors}))
    return anchors


def find_bracket_from_anchors(normalized_score: int, anchors: Sequence[AnchorPoint]) -> PageBracket | None:
    """Page range the score must fall in, judged from the anchor pages alone."""
    if not anchors:
        return None

    for anchor in anchors:
        if anchor.page_data.first_score <= normalized_score <= anchor.page_data.last_score:
            return PageBracket(anchor.page, anchor.page)

    for current, following in zip(anchors, anchors[1:]):
        if current.page_data.last_score < normalized_score < following.page_data.first_score:
            return PageBracket(current.page + 1, following.page - 1)

    best, worst = anchors[0], anchors[-1]
    if normalized_score < best.page_data.first_score:
        return PageBracket(1, best.page)
    if normalized_score > worst.page_data.last_score:
        return PageBracket(worst.page, TO_END)

    # anchors disagree with each other (leaderboard shifted mid-lookup)
    return None


def get_anchor_stats(cache: LookupCache) -> dict[str, Any]:
    return {
        "anchorCount": len(cache.anchors),
        "uniquePages": len({anchor.page for anchor in cache.anchors}),
        "percentilesCovered": [anchor.percentile for anchor in cache.anchors],
    }
