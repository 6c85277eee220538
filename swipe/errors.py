"""Swipe client error taxonomy."""

from __future__ import annotations


class SwipeError(Exception):
    """Base exception for swipe client errors."""


class AuthMissing(SwipeError):
    """No access token when one is required (manager construction or commit)."""


class RemoteFetchFailed(SwipeError):
    """A page fetch from the Track Store failed."""


class RemoteMutationFailed(SwipeError):
    """A remove (or like) call against the Track Store failed."""

    def __init__(self, track_id: str, message: str) -> None:
        super().__init__(message)
        self.track_id = track_id


class SessionExpired(SwipeError):
    """The Track Store answered 401 and the refresh attempt did not help."""
