"""Shared pytest fixtures for swiper tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from swipe.errors import RemoteFetchFailed, RemoteMutationFailed
from swipe.models import Item, Page
from swipe.session import MemoryTokenStorage, SessionStore
from swipe.view import MemoryStackView

# ---------------------------------------------------------------------------
# Helper: items and an in-memory Track Store
# ---------------------------------------------------------------------------


def make_items(count: int, start: int = 0) -> list[Item]:
    """Items with ids ``t00``, ``t01``, ... for readable assertions."""
    return [
        Item(id=f"t{i:02d}", title=f"Song {i}", artists=(f"Artist {i}",), album=f"Album {i}")
        for i in range(start, start + count)
    ]


class FakeTrackStore:
    """Track Store double over an in-memory remote list.

    ``shrink_on_remove`` deletes removed items from the remote list, so later
    offset-based pages shift the way the real collection does.
    """

    def __init__(self, remote: list[Item], total: int | None = None, *, shrink_on_remove: bool = False) -> None:
        self.remote = list(remote)
        self.total = len(remote) if total is None else total
        self.shrink_on_remove = shrink_on_remove
        self.list_calls: list[tuple[int, int]] = []
        self.remove_calls: list[str] = []
        self.like_calls: list[str] = []
        self.fail_list = False
        self.fail_remove = False
        self.list_error: Exception | None = None
        self.remove_error: Exception | None = None
        self.list_gate: asyncio.Event | None = None
        self.remove_gate: asyncio.Event | None = None
        self.pages: dict[int, list[Item]] = {}

    async def list_tracks(self, offset: int, limit: int) -> Page:
        self.list_calls.append((offset, limit))
        if self.list_gate is not None:
            await self.list_gate.wait()
        if self.list_error is not None:
            raise self.list_error
        if self.fail_list:
            raise RemoteFetchFailed("Failed to fetch liked songs (HTTP 500)")
        if offset in self.pages:
            return Page(items=list(self.pages[offset]), total=self.total)
        return Page(items=self.remote[offset : offset + limit], total=self.total)

    async def remove(self, track_id: str) -> None:
        self.remove_calls.append(track_id)
        if self.remove_gate is not None:
            await self.remove_gate.wait()
        if self.remove_error is not None:
            raise self.remove_error
        if self.fail_remove:
            raise RemoteMutationFailed(track_id, "Failed to remove song: network down")
        if self.shrink_on_remove:
            self.remote = [item for item in self.remote if item.id != track_id]

    async def like(self, track_id: str) -> None:
        self.like_calls.append(track_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session() -> SessionStore:
    store = SessionStore(MemoryTokenStorage({"accessToken": "access-1", "refreshToken": "refresh-1"}))
    store.init()
    return store


@pytest.fixture
def view() -> MemoryStackView:
    return MemoryStackView()


@pytest.fixture
def items() -> Callable[..., list[Item]]:
    """Factory: ``items(20)`` -> t00..t19, ``items(5, start=20)`` -> t20..t24."""
    return make_items


@pytest.fixture
def track_store() -> type[FakeTrackStore]:
    """The FakeTrackStore class, for tests that build their own remote list."""
    return FakeTrackStore
