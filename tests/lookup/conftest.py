import math

import pytest

from open_lookup.classes.workout import ScoreType, WorkoutMetadata
from open_lookup.exceptions import RemoteLeaderboardError


class FakeLeaderboard:
    """In-memory leaderboard that answers LeaderboardQuery calls page by page."""

    def __init__(self, rows, *, page_size=50, fail_pages=()):
        self.rows = rows
        self.page_size = page_size
        self.fail_pages = set(fail_pages)
        self.calls = []

    @property
    def total_pages(self):
        return math.ceil(len(self.rows) / self.page_size)

    @property
    def pages_fetched(self):
        return [query.page for query in self.calls]

    def __call__(self, query):
        self.calls.append(query)
        if query.page in self.fail_pages:
            raise RemoteLeaderboardError(500, "Internal Server Error")
        start = (query.page - 1) * self.page_size
        return {
            "pagination": {
                "totalPages": self.total_pages,
                "totalCompetitors": len(self.rows),
                "currentPage": query.page,
            },
            "leaderboardRows": self.rows[start : start + self.page_size],
        }


def _workout_rows(displays, *, ordinal=1, tiebreaks=None):
    rows = []
    for index, display in enumerate(displays):
        rank = index + 1
        score = {"ordinal": ordinal, "rank": str(rank), "scoreDisplay": display}
        if tiebreaks and tiebreaks[index]:
            score["breakdown"] = f"Tiebreak: {tiebreaks[index]}"
        rows.append(
            {
                "entrant": {"competitorId": str(5000 + index)},
                "overallRank": str(rank),
                "scores": [score],
            }
        )
    return rows


@pytest.fixture
def fake_leaderboard():
    return FakeLeaderboard


@pytest.fixture
def workout_rows():
    return _workout_rows


@pytest.fixture
def time_workout():
    return WorkoutMetadata(ordinal=1, name="test.1", score_type=ScoreType.TIME, time_cap_seconds=900)


@pytest.fixture
def reps_workout():
    return WorkoutMetadata(ordinal=1, name="test.reps", score_type=ScoreType.REPS, time_cap_seconds=600)


@pytest.fixture
def hybrid_workout():
    return WorkoutMetadata(
        ordinal=1,
        name="test.hybrid",
        score_type=ScoreType.TIME,
        capped_score_type=ScoreType.REPS,
        time_cap_seconds=900,
        total_reps=180,
    )


def _seconds_for_rank(rank):
    if rank <= 200:
        return 100 + 2 * rank
    if rank <= 250:
        return 530 + (rank - 201) * 30 // 49
    return 561 + (rank - 251) * 300 // 750


@pytest.fixture
def thousand_athlete_times():
    """1000 finish times; page 5 (ranks 201-250) spans 530-560 seconds."""
    displays = []
    for rank in range(1, 1001):
        minutes, seconds = divmod(_seconds_for_rank(rank), 60)
        displays.append(f"{minutes}:{seconds:02d}")
    return displays
