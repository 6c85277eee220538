"""Swipe client bootstrap and a line-driven console front end.

Usage:
    swipe --redirect-url "http://localhost:3000/?access_token=...&refresh_token=..."
    swipe                       # reuse tokens saved by a previous run

Commands at the prompt: ``l`` remove, ``r`` keep, ``esc`` cancel, ``q`` quit.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from config.settings_loader import load_settings
from core.logging_config import setup_logging
from swipe.errors import AuthMissing, RemoteFetchFailed, SessionExpired
from swipe.queue_manager import BATCH_SIZE, SESSION_EXPIRED_MESSAGE, SwipeQueueManager
from swipe.session import FileTokenStorage, SessionStore
from swipe.track_store import TrackStoreClient
from swipe.view import EMPTY_MESSAGE, MemoryStackView, StackView

logger = logging.getLogger(__name__)

INITIAL_LOAD_FAILED_MESSAGE = "Failed to load songs. Please try again."

COMMANDS: dict[str, str] = {
    "l": "ArrowLeft",
    "left": "ArrowLeft",
    "r": "ArrowRight",
    "right": "ArrowRight",
    "esc": "Escape",
}


def manager_options(settings: dict[str, Any] | None = None) -> dict[str, Any]:
    """Queue tunables from settings, in ``SwipeQueueManager`` keyword form."""
    swipe = (settings if settings is not None else load_settings())["swipe"]
    return {
        "batch_size": int(swipe["batch_size"]),
        "min_threshold": int(swipe["min_threshold"]),
        "visible_cards": int(swipe["visible_cards"]),
        "exit_delay": float(swipe["exit_delay_ms"]) / 1000.0,
    }


async def start_session(
    session: SessionStore,
    track_store: TrackStoreClient,
    view: StackView,
    **manager_kwargs: Any,
) -> SwipeQueueManager | None:
    """Fetch the first page and bring up the card stack.

    Returns None when the session is not authenticated or the first page
    cannot be loaded; the reason is surfaced through ``view.notify``.
    """
    if not session.is_authenticated:
        return None

    batch_size = int(manager_kwargs.get("batch_size", BATCH_SIZE))
    view.show_loading(True)
    try:
        page = await track_store.list_tracks(0, batch_size)
    except SessionExpired:
        view.notify(SESSION_EXPIRED_MESSAGE)
        on_expired = manager_kwargs.get("on_session_expired")
        if on_expired is not None:
            on_expired()
        return None
    except (RemoteFetchFailed, AuthMissing) as e:
        logger.error("Initial load failed: %s", e)
        view.notify(INITIAL_LOAD_FAILED_MESSAGE)
        return None
    finally:
        view.show_loading(False)

    manager = SwipeQueueManager(page, view, session=session, track_store=track_store, **manager_kwargs)
    await manager.initialize_cards()
    return manager


class ConsoleStackView(MemoryStackView):
    """MemoryStackView that echoes notices and the empty state to stdout."""

    def notify(self, message: str) -> None:
        super().notify(message)
        print(f"! {message}")

    def show_empty(self) -> None:
        super().show_empty()
        print(EMPTY_MESSAGE)

    def describe_top(self) -> str:
        node = self.top()
        if node is None:
            return "(no card)"
        processed, total = self.progress
        return f"[{processed}/{total}] {node.title} - {node.artist_line} ({node.album_line})"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    client = load_settings()["client"]
    parser = argparse.ArgumentParser(description="Swipe through your liked songs")
    parser.add_argument("--server", default=client["server_url"], help="Swiper server base URL")
    parser.add_argument("--token-file", default=client["token_file"], help="Where tokens are persisted")
    parser.add_argument("--redirect-url", help="Callback redirect URL carrying access/refresh tokens")
    parser.add_argument("--logout", action="store_true", help="Forget stored tokens and exit")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = load_settings()
    session = SessionStore(FileTokenStorage(args.token_file))
    session.init()

    if args.logout:
        session.clear_auth()
        print("Logged out.")
        return 0
    if args.redirect_url:
        session.absorb_redirect(args.redirect_url)
    if not session.is_authenticated:
        print(f"Not logged in. Open {args.server.rstrip('/')}/login and pass the final URL via --redirect-url.")
        return 1

    view = ConsoleStackView()
    done = asyncio.Event()
    track_store = TrackStoreClient(
        args.server, session, timeout=float(settings["client"].get("timeout_seconds", 30))
    )
    manager = await start_session(
        session,
        track_store,
        view,
        on_empty=done.set,
        on_session_expired=done.set,
        **manager_options(settings),
    )
    if manager is None:
        return 1

    while not done.is_set():
        print(view.describe_top())
        line = (await asyncio.to_thread(input, "[l]remove [r]keep [q]uit > ")).strip().lower()
        if line in ("q", "quit"):
            break
        key = COMMANDS.get(line)
        if key is None:
            continue
        try:
            await manager.handle_key(key)
        except AuthMissing:
            return 1

    await manager.wait_idle()
    return 0


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    raise SystemExit(main())
