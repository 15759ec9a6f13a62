"""open_lookup configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from open_lookup.paths import repo_file

DEFAULT_API_BASE = "https://c3po.crossfit.com/api/leaderboards/v2/competitions/open"
DEFAULT_TIMEOUT_SEC = 20
DEFAULT_CLUSTER_SCAN_PAGES = 60


@dataclass(frozen=True)
class LookupSettings:
    api_base_url: str = DEFAULT_API_BASE
    timeout_sec: int = DEFAULT_TIMEOUT_SEC
    cluster_scan_pages: int = DEFAULT_CLUSTER_SCAN_PAGES
    region: int = 0


def _env_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _load_env_file() -> None:
    try:
        env_path = repo_file(".env")
    except RuntimeError:
        return
    if env_path.exists():
        load_dotenv(env_path, override=False)


def load_settings(*, dotenv: bool = True) -> LookupSettings:
    """Build settings from the environment, after reading the repo .env when present.

    Variables already set in the environment win over the .env file.
    """
    if dotenv:
        _load_env_file()
    base_url = (os.getenv("OPEN_LOOKUP_API_BASE") or DEFAULT_API_BASE).rstrip("/")
    return LookupSettings(
        api_base_url=base_url,
        timeout_sec=_env_int("OPEN_LOOKUP_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC, minimum=1),
        cluster_scan_pages=_env_int("OPEN_LOOKUP_CLUSTER_SCAN_PAGES", DEFAULT_CLUSTER_SCAN_PAGES, minimum=1),
        region=_env_int("OPEN_LOOKUP_REGION", 0),
    )
