import logging

from open_lookup.classes.models import TO_END, AnchorPoint, LookupConfig, PageBracket, PageData, PageRow
from open_lookup.lookup.anchors import (
    TARGET_PERCENTILES,
    build_anchor_map,
    find_bracket_from_anchors,
    get_anchor_stats,
)
from open_lookup.lookup.fetch import create_cache

CONFIG = LookupConfig(year=2024, division=1, scaled=0, workout_ordinal=1)


def _anchor(percentile, page, scores):
    first_rank = (page - 1) * 50 + 1
    rows = [PageRow(rank=first_rank + i, score_display=str(s), score_normalized=s) for i, s in enumerate(scores)]
    page_data = PageData.from_rows(page, rows)
    return AnchorPoint(percentile=percentile, target_rank=first_rank, page=page, page_data=page_data)


def test_build_anchor_map_fetches_each_page_once(fake_leaderboard, workout_rows, thousand_athlete_times, time_workout):
    leaderboard = fake_leaderboard(workout_rows(thousand_athlete_times))
    cache = create_cache(CONFIG, time_workout, fetch_page=leaderboard)

    anchors = build_anchor_map(CONFIG, cache)

    assert len(anchors) == len(TARGET_PERCENTILES)
    assert [anchor.percentile for anchor in anchors] == sorted(TARGET_PERCENTILES)
    assert leaderboard.pages_fetched == [1, 2, 4, 6, 8, 10, 12, 14, 16, 18, 19, 20]
    assert cache.api_calls == 12
    assert cache.anchors == anchors
    by_percentile = {anchor.percentile: anchor for anchor in anchors}
    assert by_percentile[1].page_data is by_percentile[5].page_data
    assert by_percentile[50].target_rank == 500


def test_build_anchor_map_skips_failed_pages(
    fake_leaderboard, workout_rows, thousand_athlete_times, time_workout, caplog
):
    leaderboard = fake_leaderboard(workout_rows(thousand_athlete_times), fail_pages={10})
    cache = create_cache(CONFIG, time_workout, fetch_page=leaderboard)

    with caplog.at_level(logging.WARNING, logger="open_lookup.lookup.anchors"):
        anchors = build_anchor_map(CONFIG, cache)

    assert 50 not in [anchor.percentile for anchor in anchors]
    assert len(anchors) == len(TARGET_PERCENTILES) - 1
    assert "failed to fetch anchor page 10" in caplog.text
    assert cache.api_calls == 12


def test_small_leaderboard_clamps_anchor_pages(fake_leaderboard, workout_rows, time_workout):
    leaderboard = fake_leaderboard(workout_rows([f"{m}:00" for m in range(1, 11)]))
    cache = create_cache(CONFIG, time_workout, fetch_page=leaderboard)

    anchors = build_anchor_map(CONFIG, cache)

    assert {anchor.page for anchor in anchors} == {1}
    assert leaderboard.pages_fetched == [1]


def test_bracket_inside_an_anchor_page():
    anchors = [_anchor(10, 2, [100, 110]), _anchor(50, 10, [300, 320])]
    assert find_bracket_from_anchors(105, anchors) == PageBracket(2, 2)
    assert find_bracket_from_anchors(320, anchors) == PageBracket(10, 10)


def test_bracket_between_anchor_pages():
    anchors = [_anchor(10, 2, [100, 110]), _anchor(50, 10, [300, 320])]
    assert find_bracket_from_anchors(200, anchors) == PageBracket(3, 9)


def test_bracket_beyond_the_anchors():
    anchors = [_anchor(10, 2, [100, 110]), _anchor(50, 10, [300, 320])]
    assert find_bracket_from_anchors(50, anchors) == PageBracket(1, 2)
    assert find_bracket_from_anchors(999, anchors) == PageBracket(10, TO_END)


def test_bracket_without_anchors():
    assert find_bracket_from_anchors(100, []) is None


def test_get_anchor_stats(fake_leaderboard, workout_rows, thousand_athlete_times, time_workout):
    cache = create_cache(CONFIG, time_workout, fetch_page=fake_leaderboard(workout_rows(thousand_athlete_times)))
    build_anchor_map(CONFIG, cache)

    stats = get_anchor_stats(cache)

    assert stats["anchorCount"] == 13
    assert stats["uniquePages"] == 12
    assert stats["percentilesCovered"][0] == 1
