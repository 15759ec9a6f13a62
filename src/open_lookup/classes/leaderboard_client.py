# classes/leaderboard_client.py
from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from open_lookup.config import DEFAULT_API_BASE, DEFAULT_TIMEOUT_SEC
from open_lookup.exceptions import RemoteLeaderboardError

from .models import LeaderboardQuery

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "open-lookup/0.1 (+https://games.crossfit.com/leaderboard)",
}


def leaderboard_url(year: int, base_url: str = DEFAULT_API_BASE) -> str:
    return f"{base_url.rstrip('/')}/{year}/leaderboards"


class LeaderboardClient:
    """
    Thin HTTP client for the Open leaderboard. Owns a requests.Session unless one
    is provided. Read-only; no authentication is needed.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_API_BASE,
        timeout_sec: int = DEFAULT_TIMEOUT_SEC,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.base_url = base_url
        self.timeout_sec = timeout_sec
        self.logger = logging.getLogger(self.__class__.__name__)

    def clone_to(self, target_session: requests.Session) -> None:
        """Copy headers to another Session so worker threads do not share one."""
        target_session.headers.update(self.session.headers)

    def fetch_page(
        self,
        query: LeaderboardQuery,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> dict[str, Any]:
        """
        Fetch one leaderboard page and return the decoded JSON.
        """
        to = timeout or self.timeout_sec
        sess = session or self.session
        url = leaderboard_url(query.year, self.base_url)
        self.logger.debug("GET %s page=%d sort=%d", url, query.page, query.sort)
        r = sess.get(url, params=query.to_params(), timeout=to)
        if not r.ok:
            raise RemoteLeaderboardError(r.status_code, r.reason or "")
        return r.json()
