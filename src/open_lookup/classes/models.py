"""Value objects shared by the percentile and overall-rank lookups."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

DEFAULT_PAGE_SIZE = 50

# "search to the last page" marker used by anchor brackets
TO_END = -1


@dataclass(frozen=True)
class LookupConfig:
    year: int
    division: int
    scaled: int  # 0=RX, 1=Scaled, 2=Foundations
    workout_ordinal: int
    tiebreak_seconds: int | None = None


@dataclass(frozen=True)
class OverallConfig:
    year: int
    division: int
    scaled: int


@dataclass(frozen=True)
class LeaderboardQuery:
    """Everything needed to request one page of the remote leaderboard."""

    year: int
    division: int
    scaled: int
    sort: int  # 0 = overall, N = workout N
    page: int
    region: int = 0
    view: int = 0

    def to_params(self) -> dict[str, str]:
        return {
            "view": str(self.view),
            "division": str(self.division),
            "scaled": str(self.scaled),
            "page": str(self.page),
            "region": str(self.region),
            "sort": str(self.sort),
        }


@dataclass(frozen=True)
class NormalizedScore:
    """Comparable score key: lower raw always ranks better."""

    raw: int
    display: str
    is_finisher: bool | None = None


@dataclass(frozen=True)
class PageRow:
    rank: int
    score_display: str
    score_normalized: int
    athlete_id: str = ""
    tiebreak_seconds: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "rank": self.rank,
            "scoreDisplay": self.score_display,
            "scoreNormalized": self.score_normalized,
            "athleteId": self.athlete_id,
        }
        if self.tiebreak_seconds is not None:
            data["tiebreakSeconds"] = self.tiebreak_seconds
        return data


@dataclass(frozen=True)
class PageData:
    page: int
    rows: tuple[PageRow, ...]
    first_rank: int
    last_rank: int
    first_score: int
    last_score: int
    fetched_at: float

    @classmethod
    def from_rows(cls, page: int, rows: list[PageRow]) -> PageData:
        """Sort rows by rank and capture the boundary ranks and scores."""
        if not rows:
            raise ValueError(f"page {page} has no rows")
        ordered = tuple(sorted(rows, key=lambda row: row.rank))
        return cls(
            page=page,
            rows=ordered,
            first_rank=ordered[0].rank,
            last_rank=ordered[-1].rank,
            first_score=ordered[0].score_normalized,
            last_score=ordered[-1].score_normalized,
            fetched_at=time.time(),
        )


@dataclass(frozen=True)
class AnchorPoint:
    percentile: float
    target_rank: int
    page: int
    page_data: PageData


@dataclass(frozen=True)
class PageBracket:
    low_page: int
    high_page: int  # TO_END means the last page

    def to_dict(self) -> dict[str, int]:
        return {"lowPage": self.low_page, "highPage": self.high_page}


FetchPage = Callable[[LeaderboardQuery], dict[str, Any]]
RowParser = Callable[[dict[str, Any]], list[PageRow]]


@dataclass
class LookupCache:
    """Pages fetched during one lookup; created per call and dropped afterwards."""

    config: LookupConfig | OverallConfig
    sort: int
    fetch_page: FetchPage
    parse_rows: RowParser
    region: int = 0
    total_competitors: int = 0
    total_pages: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    anchors: list[AnchorPoint] = field(default_factory=list)
    pages: dict[int, PageData] = field(default_factory=dict)
    api_calls: int = 0
    created_at: float = field(default_factory=time.time)
    _totals_recorded: bool = field(default=False, repr=False)

    @property
    def totals_recorded(self) -> bool:
        return self._totals_recorded

    def record_totals(self, total_competitors: int, total_pages: int, page_size: int) -> None:
        """Store leaderboard totals once; later calls are ignored."""
        if self._totals_recorded:
            return
        self.total_competitors = total_competitors
        self.total_pages = total_pages
        self.page_size = page_size or DEFAULT_PAGE_SIZE
        self._totals_recorded = True

    def query_for(self, page: int) -> LeaderboardQuery:
        return LeaderboardQuery(
            year=self.config.year,
            division=self.config.division,
            scaled=self.config.scaled,
            sort=self.sort,
            page=page,
            region=self.region,
        )


@dataclass(frozen=True)
class RankRange:
    best: int
    worst: int

    def to_dict(self) -> dict[str, int]:
        return {"best": self.best, "worst": self.worst}


@dataclass(frozen=True)
class PercentileRange:
    best: float
    worst: float

    def to_dict(self) -> dict[str, float]:
        return {"best": self.best, "worst": self.worst}


@dataclass
class MatchDetails:
    page: int
    matching_ranks: list[int] | None = None
    bracket_above: PageRow | None = None
    bracket_below: PageRow | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"page": self.page}
        if self.matching_ranks:
            data["matchingRanks"] = list(self.matching_ranks)
        if self.bracket_above is not None:
            data["bracketAbove"] = self.bracket_above.to_dict()
        if self.bracket_below is not None:
            data["bracketBelow"] = self.bracket_below.to_dict()
        return data


@dataclass
class LookupDebug:
    normalized_score: int = 0
    anchors_used: int = 0
    pages_searched: list[int] = field(default_factory=list)
    bracket_found: PageBracket | None = None
    match_details: MatchDetails | None = None
    cluster_complete: bool | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "normalizedScore": self.normalized_score,
            "anchorsUsed": self.anchors_used,
            "pagesSearched": list(self.pages_searched),
        }
        if self.bracket_found is not None:
            data["bracketFound"] = self.bracket_found.to_dict()
        if self.match_details is not None:
            data["matchDetails"] = self.match_details.to_dict()
        if self.cluster_complete is not None:
            data["clusterComplete"] = self.cluster_complete
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class LookupResult:
    success: bool
    percentile: float | None
    estimated_rank: int | None
    total_competitors: int
    match_type: str  # "exact" | "bracket" | "error"
    api_calls_made: int
    percentile_range: PercentileRange | None = None
    rank_range: RankRange | None = None
    debug: LookupDebug | None = None

    @property
    def error(self) -> str | None:
        return self.debug.error if self.debug else None

    def to_dict(self, *, include_debug: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "percentile": self.percentile,
            "estimatedRank": self.estimated_rank,
            "totalCompetitors": self.total_competitors,
            "matchType": self.match_type,
            "apiCallsMade": self.api_calls_made,
        }
        if self.percentile_range is not None:
            data["percentileRange"] = self.percentile_range.to_dict()
        if self.rank_range is not None:
            data["rankRange"] = self.rank_range.to_dict()
        if include_debug and self.debug is not None:
            data["debug"] = self.debug.to_dict()
        return data


@dataclass
class OverallDebug:
    target_points: int
    pages_searched: list[int] = field(default_factory=list)
    bracket_above: PageRow | None = None
    bracket_below: PageRow | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "targetPoints": self.target_points,
            "pagesSearched": list(self.pages_searched),
        }
        if self.bracket_above is not None:
            data["bracketAbove"] = {"rank": self.bracket_above.rank, "points": self.bracket_above.score_normalized}
        if self.bracket_below is not None:
            data["bracketBelow"] = {"rank": self.bracket_below.rank, "points": self.bracket_below.score_normalized}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class OverallLookupResult:
    success: bool
    overall_rank: int | None
    overall_percentile: float | None
    total_competitors: int
    match_type: str  # "exact" | "bracket" | "error"
    api_calls_made: int
    debug: OverallDebug | None = None

    @property
    def error(self) -> str | None:
        return self.debug.error if self.debug else None

    def to_dict(self, *, include_debug: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "overallRank": self.overall_rank,
            "overallPercentile": self.overall_percentile,
            "totalCompetitors": self.total_competitors,
            "matchType": self.match_type,
            "apiCallsMade": self.api_calls_made,
        }
        if include_debug and self.debug is not None:
            data["debug"] = self.debug.to_dict()
        return data
