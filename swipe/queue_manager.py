"""Swipe Queue Manager: the working set behind the card stack.

Owns, for one authenticated session:

- ``available_items`` – ordered working set, never holding an id twice
- ``processed_ids``   – ids with a final outcome; never shown again
- ``pending_ids``     – ids mid-commit (exit animation / remote call)
- ``current_offset`` / ``total_items`` – pagination cursor into the remote list
- the visible stack – the first few working-set items, rendered through a
  ``StackView``

Lifecycle of an item::

    Unseen -> InWorkingSet -> Pending -> Processed
                                 \\-> InWorkingSet   (remote mutation failed)

Everything runs on one asyncio loop.  Suspension points are the Track Store
calls and the exit delay; all set/cursor updates between them are atomic.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Protocol

from swipe.errors import AuthMissing, SessionExpired, SwipeError
from swipe.gestures import (
    CANCEL_KEY,
    CardTransform,
    Direction,
    DragState,
    direction_for_key,
    drag_transform,
    resolve_release,
)
from swipe.models import Item, Page
from swipe.session import SessionStore
from swipe.view import StackView, render_item

logger = logging.getLogger(__name__)

BATCH_SIZE = 20
MIN_THRESHOLD = 5
VISIBLE_CARDS = 3
EXIT_DELAY = 0.3

REMOVE_FAILED_MESSAGE = "Failed to remove song. Please try again."
KEEP_FAILED_MESSAGE = "Failed to save song. Please try again."
LOAD_FAILED_MESSAGE = "Failed to load more songs. Please try again."
SESSION_EXPIRED_MESSAGE = "Session expired. Please log in again."
AUTH_MISSING_MESSAGE = "You are not logged in. Please log in again."


class TrackStore(Protocol):
    async def list_tracks(self, offset: int, limit: int) -> Page: ...

    async def remove(self, track_id: str) -> None: ...

    async def like(self, track_id: str) -> None: ...


class SwipeQueueManager:
    def __init__(
        self,
        initial_page: Page,
        view: StackView,
        *,
        session: SessionStore,
        track_store: TrackStore,
        on_empty: Callable[[], None] | None = None,
        on_session_expired: Callable[[], None] | None = None,
        batch_size: int = BATCH_SIZE,
        min_threshold: int = MIN_THRESHOLD,
        visible_cards: int = VISIBLE_CARDS,
        exit_delay: float = EXIT_DELAY,
        persist_keep: bool = False,
    ) -> None:
        if not session.access_token:
            raise AuthMissing("No access token found")

        self.view = view
        self.session = session
        self.track_store = track_store
        self.on_empty = on_empty
        self.on_session_expired = on_session_expired
        self.batch_size = batch_size
        self.min_threshold = min_threshold
        self.visible_cards = visible_cards
        self.exit_delay = exit_delay
        self.persist_keep = persist_keep

        self.available_items: list[Item] = []
        self.processed_ids: set[str] = set()
        self.pending_ids: set[str] = set()
        self._working_ids: set[str] = set()
        self._append_unique(initial_page.items)

        self.total_items = max(0, int(initial_page.total))
        self.current_offset = min(initial_page.entry_count, self.total_items)

        self.is_loading = False
        self._loaded = asyncio.Event()
        self._top_up_task: asyncio.Task[None] | None = None
        self._visible: list[Item] = []
        self._drags: dict[str, DragState] = {}
        self._empty_fired = False

        logger.info(
            "Queue initialized with %d items",
            len(self.available_items),
            extra={"offset": self.current_offset, "limit": self.total_items},
        )

    # ------------------------------------------------------------------
    # Working set bookkeeping
    # ------------------------------------------------------------------

    def _append_unique(self, items: Iterable[Item]) -> list[Item]:
        """Append items unknown to every set; return what was added."""
        added: list[Item] = []
        for item in items:
            if item.id in self.processed_ids or item.id in self.pending_ids or item.id in self._working_ids:
                continue
            self.available_items.append(item)
            self._working_ids.add(item.id)
            added.append(item)
        return added

    def _drop_from_working(self, item_id: str) -> None:
        self.available_items = [item for item in self.available_items if item.id != item_id]
        self._working_ids.discard(item_id)

    def _update_progress(self) -> None:
        self.view.update_progress(len(self.processed_ids), self.total_items)

    # ------------------------------------------------------------------
    # Visible stack
    # ------------------------------------------------------------------

    @property
    def visible_ids(self) -> list[str]:
        """Rendered card ids, front (highest stacking value) first."""
        return [item.id for item in self._visible]

    def top_card(self) -> Item | None:
        return self._visible[0] if self._visible else None

    def _visible_item(self, item_id: str) -> Item | None:
        return next((item for item in self._visible if item.id == item_id), None)

    def _mount(self, item: Item) -> None:
        self._visible.append(item)
        self.view.mount(render_item(item), z=1)

    def _renormalize(self) -> None:
        count = len(self._visible)
        for index, item in enumerate(self._visible):
            self.view.set_z(item.id, count - index)

    def _remove_card(self, item_id: str) -> None:
        self._visible = [item for item in self._visible if item.id != item_id]
        self._drags.pop(item_id, None)
        self.view.remove(item_id)
        self._renormalize()

    def _next_candidate(self) -> Item | None:
        shown = {item.id for item in self._visible}
        for item in self.available_items:
            if item.id in shown or item.id in self.processed_ids or item.id in self.pending_ids:
                continue
            return item
        return None

    async def initialize_cards(self) -> None:
        """Render the head of the working set as the card stack.

        Tops up first when the working set is empty but the remote is not.
        """
        self._update_progress()
        while len(self._visible) < self.visible_cards:
            shown = len(self._visible)
            await self.load_next_card()
            if len(self._visible) == shown:
                break

    async def load_next_card(self) -> None:
        """Put the next unshown working-set item at the back of the stack.

        Waits for a top-up when the working set has nothing left to show but
        the remote list does; declares the stack empty once both are drained.
        """
        if len(self._visible) >= self.visible_cards:
            return

        candidate = self._next_candidate()
        while candidate is None and self.current_offset < self.total_items:
            before = self.current_offset
            await self._await_top_up()
            if self.current_offset == before:
                # Fetch failed; the next natural trigger retries.
                break
            candidate = self._next_candidate()

        if candidate is None:
            if not self.available_items and self.current_offset >= self.total_items:
                self._declare_empty()
            return

        if len(self._visible) >= self.visible_cards:
            return
        self._mount(candidate)
        self._renormalize()

    def _declare_empty(self) -> None:
        if self._empty_fired:
            return
        self._empty_fired = True
        logger.info("No more songs to show")
        self.view.show_empty()
        if self.on_empty is not None:
            self.on_empty()

    # ------------------------------------------------------------------
    # Top-up
    # ------------------------------------------------------------------

    async def load_more_items(self) -> None:
        """Fetch the next remote page into the working set.

        No-op while another fetch is in flight or once the cursor reached the
        remote total.  The cursor advances by the requested page size, not by
        the number of items that survived de-duplication.
        """
        if self.is_loading or self.current_offset >= self.total_items:
            return

        self.is_loading = True
        self._loaded = asyncio.Event()
        offset, limit = self.current_offset, self.batch_size
        self.view.show_loading(True)
        try:
            page = await self.track_store.list_tracks(offset, limit)
            added = self._append_unique(page.items)
            self.current_offset = min(offset + limit, self.total_items)
            logger.info(
                "Top-up added %d of %d fetched items",
                len(added),
                len(page.items),
                extra={"offset": offset, "limit": limit},
            )
        except SessionExpired:
            self._handle_session_expired()
        except SwipeError as e:
            logger.warning("Top-up failed: %s", e, extra={"offset": offset, "limit": limit})
            self.view.notify(LOAD_FAILED_MESSAGE)
        finally:
            self.is_loading = False
            self._loaded.set()
            self.view.show_loading(False)
            self._update_progress()

    def _schedule_top_up(self) -> None:
        if self.is_loading or self.current_offset >= self.total_items:
            return
        if self._top_up_task is not None and not self._top_up_task.done():
            return
        self._top_up_task = asyncio.create_task(self.load_more_items())

    async def _await_top_up(self) -> None:
        task = self._top_up_task
        if task is not None and not task.done():
            await task
        elif self.is_loading:
            await self._loaded.wait()
        else:
            await self.load_more_items()

    async def wait_idle(self) -> None:
        """Wait for a background top-up, if one is running."""
        task = self._top_up_task
        if task is not None and not task.done():
            await task

    # ------------------------------------------------------------------
    # Commit pipeline
    # ------------------------------------------------------------------

    async def process_commit(self, item: Item, direction: Direction) -> bool:
        """Finalize ``direction`` for ``item``.

        Returns True when the item ended up processed, False when the commit
        was absorbed (already pending/processed) or rolled back.
        """
        if item.id in self.pending_ids or item.id in self.processed_ids:
            return False

        if not self.session.access_token:
            self.view.reset_transform(item.id)
            self.view.notify(AUTH_MISSING_MESSAGE)
            raise AuthMissing("No access token available at commit time")

        self.pending_ids.add(item.id)
        self._drags.pop(item.id, None)
        self.view.play_exit(item.id, direction)
        logger.info("Committing", extra={"track_id": item.id, "direction": direction.value})

        try:
            if direction is Direction.LEFT:
                await self.track_store.remove(item.id)
            elif self.persist_keep:
                await self.track_store.like(item.id)
        except SessionExpired:
            self._rollback(item.id)
            self._handle_session_expired()
            return False
        except SwipeError as e:
            logger.error("Commit failed: %s", e, extra={"track_id": item.id, "direction": direction.value})
            self._rollback(item.id)
            self.view.notify(REMOVE_FAILED_MESSAGE if direction is Direction.LEFT else KEEP_FAILED_MESSAGE)
            return False
        except BaseException:
            # Pending must never outlive a failed commit
            self._rollback(item.id)
            raise

        self.processed_ids.add(item.id)
        self._drop_from_working(item.id)
        self.pending_ids.discard(item.id)
        self._update_progress()

        if len(self.available_items) <= self.min_threshold and self.current_offset < self.total_items:
            self._schedule_top_up()

        await asyncio.sleep(self.exit_delay)
        self._remove_card(item.id)
        await self.load_next_card()
        return True

    def _rollback(self, item_id: str) -> None:
        self.pending_ids.discard(item_id)
        self.view.reset_transform(item_id)

    def _handle_session_expired(self) -> None:
        logger.warning("Session expired")
        self.view.notify(SESSION_EXPIRED_MESSAGE)
        if self.on_session_expired is not None:
            self.on_session_expired()

    # ------------------------------------------------------------------
    # Gestures
    # ------------------------------------------------------------------

    def start_drag(self, item_id: str, x: float, y: float) -> bool:
        if item_id in self.pending_ids or self._visible_item(item_id) is None:
            return False
        self._drags[item_id] = DragState(start_x=x, start_y=y)
        return True

    def move_drag(self, item_id: str, x: float, y: float) -> CardTransform | None:
        state = self._drags.get(item_id)
        if state is None or not state.dragging:
            return None
        transform = drag_transform(state.move(x), state.initial_rotation)
        self.view.set_transform(item_id, transform)
        return transform

    async def end_drag(self, item_id: str) -> bool:
        state = self._drags.pop(item_id, None)
        if state is None:
            return False
        state.dragging = False

        direction = resolve_release(state.delta_x)
        item = self._visible_item(item_id)
        if direction is None or item is None:
            self.view.reset_transform(item_id)
            return False
        return await self.process_commit(item, direction)

    def cancel_drags(self) -> None:
        """Snap every card with an uncommitted drag offset back to neutral."""
        for item_id in list(self._drags):
            del self._drags[item_id]
            self.view.reset_transform(item_id)

    async def handle_key(self, key: str) -> bool:
        """Arrow keys commit the top card; Escape cancels drag offsets."""
        if key == CANCEL_KEY:
            self.cancel_drags()
            return False

        direction = direction_for_key(key)
        if direction is None:
            return False
        top = self.top_card()
        if top is None:
            return False
        return await self.process_commit(top, direction)
