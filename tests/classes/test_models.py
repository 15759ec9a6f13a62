import pytest

from open_lookup.classes.models import (
    LookupCache,
    LookupConfig,
    LookupDebug,
    LookupResult,
    MatchDetails,
    PageBracket,
    PageData,
    PageRow,
    RankRange,
)


def _row(rank, score):
    return PageRow(rank=rank, score_display=str(score), score_normalized=score)


def test_page_data_sorts_rows_and_records_boundaries():
    page = PageData.from_rows(2, [_row(53, 30), _row(51, 10), _row(52, 20)])

    assert [row.rank for row in page.rows] == [51, 52, 53]
    assert (page.first_rank, page.last_rank) == (51, 53)
    assert (page.first_score, page.last_score) == (10, 30)


def test_page_data_requires_rows():
    with pytest.raises(ValueError):
        PageData.from_rows(1, [])


def test_cache_records_totals_once():
    cache = LookupCache(
        config=LookupConfig(year=2024, division=1, scaled=0, workout_ordinal=2),
        sort=2,
        fetch_page=lambda _query: {},
        parse_rows=lambda _payload: [],
        region=3,
    )

    cache.record_totals(1000, 20, 50)
    cache.record_totals(5, 1, 5)

    assert cache.totals_recorded
    assert (cache.total_competitors, cache.total_pages, cache.page_size) == (1000, 20, 50)
    query = cache.query_for(7)
    assert (query.sort, query.page, query.region, query.year) == (2, 7, 3, 2024)


def test_lookup_result_error_and_dict():
    debug = LookupDebug(
        normalized_score=542,
        anchors_used=13,
        pages_searched=[5],
        bracket_found=PageBracket(5, 5),
        match_details=MatchDetails(page=5, matching_ranks=[221, 222], bracket_above=_row(220, 541)),
        cluster_complete=True,
    )
    result = LookupResult(
        success=True,
        percentile=77.9,
        estimated_rank=222,
        total_competitors=1000,
        match_type="exact",
        api_calls_made=13,
        rank_range=RankRange(221, 222),
        debug=debug,
    )

    data = result.to_dict()

    assert result.error is None
    assert data["estimatedRank"] == 222
    assert "percentileRange" not in data
    assert data["debug"]["bracketFound"] == {"lowPage": 5, "highPage": 5}
    assert data["debug"]["matchDetails"]["matchingRanks"] == [221, 222]
    assert data["debug"]["matchDetails"]["bracketAbove"]["scoreNormalized"] == 541
    assert data["debug"]["clusterComplete"] is True


def test_page_row_to_dict_includes_tiebreak_only_when_known():
    assert "tiebreakSeconds" not in _row(1, 10).to_dict()
    row = PageRow(rank=1, score_display="100 reps", score_normalized=-100, tiebreak_seconds=300)
    assert row.to_dict()["tiebreakSeconds"] == 300
