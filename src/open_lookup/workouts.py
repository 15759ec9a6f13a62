"""Workout scoring metadata registry backed by the bundled workouts.yaml."""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path

import yaml

from open_lookup.classes.workout import ScoreType, WorkoutMetadata
from open_lookup.paths import package_file

logger = logging.getLogger(__name__)

WORKOUTS_FILE = "workouts.yaml"


def load_workout_catalog(path: Path | None = None) -> dict[int, list[WorkoutMetadata]]:
    """Parse a workouts YAML file into metadata objects keyed by year."""
    catalog_path = path or package_file(WORKOUTS_FILE)
    with open(catalog_path, "r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}

    catalog: dict[int, list[WorkoutMetadata]] = {}
    for year, entries in raw.items():
        workouts = [WorkoutMetadata.from_dict(entry) for entry in entries or []]
        catalog[int(year)] = sorted(workouts, key=lambda w: w.ordinal)
    logger.debug("loaded %d years of workout metadata from %s", len(catalog), catalog_path)
    return catalog


@lru_cache(maxsize=1)
def _default_catalog() -> dict[int, list[WorkoutMetadata]]:
    return load_workout_catalog()


def get_workout_metadata(year: int, ordinal: int) -> WorkoutMetadata | None:
    for workout in _default_catalog().get(year, []):
        if workout.ordinal == ordinal:
            return workout
    return None


def get_workouts_for_year(year: int) -> list[WorkoutMetadata]:
    return list(_default_catalog().get(year, []))


def get_available_years() -> list[int]:
    """Years with metadata, newest first."""
    return sorted(_default_catalog(), reverse=True)


def infer_score_type(score_display: str) -> ScoreType:
    """Best-effort guess of a score type from a leaderboard display string."""
    normalized = score_display.lower().strip()

    if re.fullmatch(r"\d+:\d{2}", normalized):
        return ScoreType.TIME
    if re.search(r"\d+\s*reps?$", normalized):
        return ScoreType.REPS
    if re.search(r"\d+\s*\+\s*\d+", normalized):
        return ScoreType.ROUNDS_REPS
    if re.search(r"\d+\s*(?:lbs?|kg)$", normalized):
        return ScoreType.LOAD
    return ScoreType.REPS
