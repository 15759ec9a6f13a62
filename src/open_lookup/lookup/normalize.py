"""Score normalization for the anchor-based percentile lookup.

Every score becomes a single integer where a LOWER value ranks BETTER, which
matches the ascending rank order of the remote leaderboard:

* time        -> seconds
* reps        -> -reps
* rounds+reps -> -(rounds * reps_per_round + reps)
* load        -> -pounds (kg converted, rounded)
* hybrid      -> seconds for finishers, CAPPED_OFFSET + (total_reps - reps)
                 for athletes stopped by the time cap
"""

from __future__ import annotations

import math
import re

from open_lookup.classes.models import NormalizedScore
from open_lookup.classes.workout import ScoreType, WorkoutMetadata

# larger than any finisher time, so every capped athlete sorts after every finisher
CAPPED_OFFSET = 1_000_000

KG_TO_LB = 2.20462

_WHITESPACE = re.compile(r"\s+")
_DIVISION_SUFFIX = re.compile(r"\s*-\s*[sf]$")
_COLON_TIME = re.compile(r"^(\d{1,2}):(\d{2})$")
_MINSEC_TIME = re.compile(r"^(\d{1,2})m(\d{2})s?$")
_SECONDS_TIME = re.compile(r"^(\d+)s$")
_BARE_NUMBER = re.compile(r"^(\d+)$")
_REPS = re.compile(r"^(\d+)(reps?)?$")
_ROUNDS_REPS = re.compile(r"^(\d+)\+(\d+)$")
_LOAD = re.compile(r"^(\d+(?:\.\d+)?)(lb|lbs|kg|kgs)?$")
_API_TIME = re.compile(r"^(\d+):(\d{2})$")
_API_REPS = re.compile(r"^(\d+)\s*(?:reps?)?$")


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_time(total_seconds: int) -> str:
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


def parse_time_format(value: str) -> int | None:
    """Parse ``MM:SS``, ``M:SS``, ``XmYYs`` or ``Ns`` into seconds."""
    for pattern in (_COLON_TIME, _MINSEC_TIME):
        match = pattern.match(value)
        if match:
            minutes, seconds = int(match.group(1)), int(match.group(2))
            if seconds >= 60:
                return None
            return minutes * 60 + seconds

    match = _SECONDS_TIME.match(value)
    if match:
        return int(match.group(1))
    return None


def parse_tiebreak_time(value: str | None) -> int | None:
    """Parse a user tiebreak like ``8:41`` into seconds."""
    if not value or not isinstance(value, str):
        return None
    match = re.fullmatch(r"(\d+):(\d{2})", value.strip())
    if not match:
        return None
    minutes, seconds = int(match.group(1)), int(match.group(2))
    if seconds >= 60:
        return None
    return minutes * 60 + seconds


def normalize_user_score(score_input: str, workout: WorkoutMetadata) -> NormalizedScore | None:
    """Normalize a user-entered score; ``None`` when it cannot be parsed or is out of range."""
    value = (score_input or "").strip().lower()
    if not value:
        return None

    if workout.is_hybrid:
        return _normalize_hybrid(value, workout)
    return _normalize_by_type(value, workout, allow_bare_seconds=True)


def normalize_api_score(score_display: str, workout: WorkoutMetadata) -> NormalizedScore | None:
    """Normalize a leaderboard ``scoreDisplay`` string onto the same axis as user input."""
    value = (score_display or "").lower().strip()
    value = _DIVISION_SUFFIX.sub("", value)
    if not value:
        return None

    if workout.is_hybrid:
        return _normalize_hybrid_api(value, workout)
    return _normalize_by_type(value, workout, allow_bare_seconds=False)


def _normalize_by_type(value: str, workout: WorkoutMetadata, *, allow_bare_seconds: bool) -> NormalizedScore | None:
    if workout.score_type is ScoreType.TIME:
        return _normalize_time(value, workout, allow_bare_seconds=allow_bare_seconds)
    if workout.score_type is ScoreType.REPS:
        return _normalize_reps(value)
    if workout.score_type is ScoreType.ROUNDS_REPS:
        return _normalize_rounds_reps(value, workout)
    if workout.score_type is ScoreType.LOAD:
        return _normalize_load(value)
    return None


def _normalize_hybrid(value: str, workout: WorkoutMetadata) -> NormalizedScore | None:
    compact = _WHITESPACE.sub("", value)
    total_reps = workout.total_reps or 0

    seconds = parse_time_format(compact)
    if seconds is not None:
        if workout.time_cap_seconds and seconds > workout.time_cap_seconds:
            return None
        return NormalizedScore(raw=seconds, display=format_time(seconds), is_finisher=True)

    match = _REPS.match(compact)
    if match:
        reps = int(match.group(1))
        # reaching total_reps means the athlete finished and has a time instead
        if reps >= total_reps:
            return None
        return NormalizedScore(
            raw=CAPPED_OFFSET + (total_reps - reps),
            display=f"{reps} reps (capped)",
            is_finisher=False,
        )
    return None


def _normalize_hybrid_api(value: str, workout: WorkoutMetadata) -> NormalizedScore | None:
    match = _API_TIME.match(value)
    if match:
        seconds = int(match.group(1)) * 60 + int(match.group(2))
        return NormalizedScore(raw=seconds, display=value, is_finisher=True)

    match = _API_REPS.match(value)
    if match and workout.total_reps:
        reps = int(match.group(1))
        return NormalizedScore(
            raw=CAPPED_OFFSET + (workout.total_reps - reps),
            display=f"{reps} reps",
            is_finisher=False,
        )
    return None


def _normalize_time(value: str, workout: WorkoutMetadata, *, allow_bare_seconds: bool) -> NormalizedScore | None:
    compact = _WHITESPACE.sub("", value)
    seconds = parse_time_format(compact)
    if seconds is None and allow_bare_seconds:
        match = _BARE_NUMBER.match(compact)
        if match:
            seconds = int(match.group(1))
    if seconds is None:
        return None
    if workout.time_cap_seconds and seconds > workout.time_cap_seconds:
        return None
    return NormalizedScore(raw=seconds, display=format_time(seconds))


def _normalize_reps(value: str) -> NormalizedScore | None:
    match = _REPS.match(_WHITESPACE.sub("", value))
    if not match:
        return None
    reps = int(match.group(1))
    return NormalizedScore(raw=-reps, display=f"{reps} reps")


def _normalize_rounds_reps(value: str, workout: WorkoutMetadata) -> NormalizedScore | None:
    match = _ROUNDS_REPS.match(_WHITESPACE.sub("", value))
    if not match:
        return None
    rounds, reps = int(match.group(1)), int(match.group(2))
    total = rounds * (workout.reps_per_round or 1) + reps
    return NormalizedScore(raw=-total, display=f"{rounds}+{reps}")


def _normalize_load(value: str) -> NormalizedScore | None:
    match = _LOAD.match(_WHITESPACE.sub("", value))
    if not match:
        return None
    weight = float(match.group(1))
    if (match.group(2) or "lb").startswith("kg"):
        weight *= KG_TO_LB
    pounds = round_half_up(weight)
    if weight <= 0 or pounds <= 0:
        return None
    return NormalizedScore(raw=-pounds, display=f"{pounds} lb")


def compare_scores(score_a: int, score_b: int) -> int:
    """-1 if ``score_a`` ranks better, 1 if worse, 0 when tied."""
    if score_a < score_b:
        return -1
    if score_a > score_b:
        return 1
    return 0


def score_in_range(score: int, first_score: int, last_score: int) -> bool:
    """True when ``score`` lies within a page's [best, worst] boundary scores."""
    return first_score <= score <= last_score
