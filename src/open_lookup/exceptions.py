"""Errors raised by the leaderboard page client."""

from __future__ import annotations


class LeaderboardError(Exception):
    """Base class for remote leaderboard failures."""


class RemoteLeaderboardError(LeaderboardError):
    """The remote leaderboard answered with a non-2xx status."""

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"CrossFit API error: {status_code} {reason}".rstrip())


class EmptyPageError(LeaderboardError):
    """A fetched page produced no usable rows."""

    def __init__(self, page: int, message: str) -> None:
        self.page = page
        super().__init__(message)


class NoCompetitorsError(LeaderboardError):
    """Page 1 reported an empty leaderboard."""
