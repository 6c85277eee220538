"""Swipe client: session tokens, Track Store client and the swipe queue."""

from swipe.errors import AuthMissing, RemoteFetchFailed, RemoteMutationFailed, SessionExpired, SwipeError
from swipe.gestures import Direction
from swipe.models import Item, Page
from swipe.queue_manager import SwipeQueueManager
from swipe.session import FileTokenStorage, MemoryTokenStorage, SessionStore
from swipe.track_store import TrackStoreClient

__all__ = [
    "AuthMissing",
    "Direction",
    "FileTokenStorage",
    "Item",
    "MemoryTokenStorage",
    "Page",
    "RemoteFetchFailed",
    "RemoteMutationFailed",
    "SessionExpired",
    "SessionStore",
    "SwipeError",
    "SwipeQueueManager",
    "TrackStoreClient",
]
