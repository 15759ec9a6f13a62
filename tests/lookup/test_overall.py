from open_lookup.classes.models import OverallConfig, OverallDebug, OverallLookupResult, PageRow
from open_lookup.lookup.anchors import build_anchor_map
from open_lookup.lookup.fetch import create_overall_cache
from open_lookup.lookup.overall import OVERALL_TARGET_PERCENTILES, find_points_bracket, lookup_overall_by_points

CONFIG = OverallConfig(year=2024, division=1, scaled=0)


def _points_for_rank(rank):
    return 10 + 3 * rank


def _overall_rows(count=200):
    rows = []
    for rank in range(1, count + 1):
        points = _points_for_rank(rank)
        first = points // 3
        rows.append(
            {
                "entrant": {"competitorId": str(rank)},
                "overallRank": str(rank),
                "scores": [
                    {"ordinal": 1, "rank": str(first)},
                    {"ordinal": 2, "rank": str(first)},
                    {"ordinal": 3, "rank": str(points - 2 * first)},
                ],
            }
        )
    return rows


def test_points_bracket_narrows_from_both_sides(fake_leaderboard):
    cache = create_overall_cache(CONFIG, fetch_page=fake_leaderboard(_overall_rows()))
    anchors = build_anchor_map(CONFIG, cache, OVERALL_TARGET_PERCENTILES)

    bracket = find_points_bracket(_points_for_rank(120), anchors, cache.total_pages)

    assert (bracket.low_page, bracket.high_page) == (2, 4)


def test_overall_exact_points(fake_leaderboard):
    leaderboard = fake_leaderboard(_overall_rows())

    result = lookup_overall_by_points(CONFIG, _points_for_rank(120), fetch_page=leaderboard)

    assert result.success is True
    assert result.match_type == "exact"
    assert result.overall_rank == 120
    assert result.overall_percentile == 40.5
    assert result.total_competitors == 200
    assert result.api_calls_made == 4
    assert result.debug.pages_searched == [1, 2, 3, 4]


def test_overall_points_between_athletes(fake_leaderboard):
    result = lookup_overall_by_points(CONFIG, _points_for_rank(120) + 1, fetch_page=fake_leaderboard(_overall_rows()))

    assert result.match_type == "bracket"
    assert result.overall_rank == 120
    assert result.debug.bracket_above.rank == 120
    assert result.debug.bracket_below.rank == 121


def test_overall_best_possible_points(fake_leaderboard):
    result = lookup_overall_by_points(CONFIG, 3, fetch_page=fake_leaderboard(_overall_rows()))

    assert result.success is True
    assert result.overall_rank == 1
    assert result.overall_percentile == 100.0


def test_overall_exact_tie_uses_best_rank(fake_leaderboard):
    rows = _overall_rows()
    # athletes 49-52 share a total across the page 1/2 boundary
    for row in rows[48:52]:
        row["scores"] = [{"ordinal": 1, "rank": "80"}, {"ordinal": 2, "rank": "80"}, {"ordinal": 3, "rank": "4"}]

    result = lookup_overall_by_points(CONFIG, 164, fetch_page=fake_leaderboard(rows))

    assert result.match_type == "exact"
    assert result.overall_rank == 49


def test_overall_rejects_non_positive_points(fake_leaderboard):
    leaderboard = fake_leaderboard(_overall_rows())

    result = lookup_overall_by_points(CONFIG, 0, fetch_page=leaderboard)

    assert result.match_type == "error"
    assert result.api_calls_made == 0
    assert leaderboard.calls == []


def test_overall_remote_failure(fake_leaderboard):
    result = lookup_overall_by_points(CONFIG, 100, fetch_page=fake_leaderboard(_overall_rows(), fail_pages={1}))

    assert result.success is False
    assert result.api_calls_made == 1
    assert result.to_dict()["debug"]["error"].startswith("CrossFit API error: 500")


def test_overall_to_dict():
    debug = OverallDebug(target_points=50, pages_searched=[1], bracket_above=PageRow(3, "49", 49))
    data = OverallLookupResult(
        success=True,
        overall_rank=4,
        overall_percentile=97.0,
        total_competitors=100,
        match_type="bracket",
        api_calls_made=2,
        debug=debug,
    ).to_dict()

    assert data["overallRank"] == 4
    assert data["debug"]["bracketAbove"] == {"rank": 3, "points": 49}
    assert "bracketBelow" not in data["debug"]
