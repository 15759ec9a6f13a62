"""Scoring metadata for a single Open workout."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ScoreType(str, Enum):
    TIME = "time"
    REPS = "reps"
    ROUNDS_REPS = "rounds_reps"
    LOAD = "load"


@dataclass(frozen=True)
class TiebreakConfig:
    description: str
    at_reps: int | None = None


@dataclass(frozen=True)
class WorkoutMetadata:
    """Read-only scoring rules used to normalize scores for one workout."""

    ordinal: int
    name: str
    score_type: ScoreType
    sort_direction: str = "asc"
    capped_score_type: ScoreType | None = None
    time_cap_seconds: int | None = None
    total_reps: int | None = None
    reps_per_round: int | None = None
    tiebreak: TiebreakConfig | None = None
    description: str = ""

    @property
    def is_hybrid(self) -> bool:
        """Finishers are scored by time, capped athletes by reps."""
        return self.capped_score_type is ScoreType.REPS and bool(self.total_reps)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkoutMetadata:
        capped = data.get("capped_score_type")
        tiebreak = data.get("tiebreak")
        return cls(
            ordinal=int(data["ordinal"]),
            name=str(data["name"]),
            score_type=ScoreType(data["score_type"]),
            sort_direction=str(data.get("sort_direction", "asc")),
            capped_score_type=ScoreType(capped) if capped else None,
            time_cap_seconds=data.get("time_cap_seconds"),
            total_reps=data.get("total_reps"),
            reps_per_round=data.get("reps_per_round"),
            tiebreak=(
                TiebreakConfig(description=tiebreak["description"], at_reps=tiebreak.get("at_reps"))
                if tiebreak
                else None
            ),
            description=data.get("description", "") or "",
        )
