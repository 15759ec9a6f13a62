"""Outcome of comparing a score against the rows of one or more pages.

Each variant is its own class so callers dispatch with ``isinstance`` instead
of probing optional fields:

* ``ExactMatch``  - one or more rows carry exactly the target score.
* ``BracketMatch`` - the score sits strictly between two observed rows.
* ``EdgeBetter``  - the score beats every row that was looked at.
* ``EdgeWorse``   - the score loses to every row that was looked at.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union

from .models import PageRow


@dataclass(frozen=True)
class ExactMatch:
    ranks: tuple[int, ...]
    tiebreaks: tuple[int | None, ...]  # parallel to ranks
    bracket_above: PageRow | None = None
    bracket_below: PageRow | None = None

    kind: ClassVar[str] = "exact"

    @property
    def best_rank(self) -> int:
        return min(self.ranks)

    @property
    def worst_rank(self) -> int:
        return max(self.ranks)


@dataclass(frozen=True)
class BracketMatch:
    # both are None only if a page had no comparable rows at all
    bracket_above: PageRow | None = None
    bracket_below: PageRow | None = None

    kind: ClassVar[str] = "bracket"


@dataclass(frozen=True)
class EdgeBetter:
    bracket_below: PageRow

    kind: ClassVar[str] = "edge_better"

    @property
    def bracket_above(self) -> None:
        return None


@dataclass(frozen=True)
class EdgeWorse:
    bracket_above: PageRow

    kind: ClassVar[str] = "edge_worse"

    @property
    def bracket_below(self) -> None:
        return None


MatchResult = Union[ExactMatch, BracketMatch, EdgeBetter, EdgeWorse]


def is_edge(match: MatchResult) -> bool:
    return isinstance(match, (EdgeBetter, EdgeWorse))
