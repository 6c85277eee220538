"""View projection of the card stack.

``render_item`` turns an Item into an immutable ``ViewNode``.  ``StackView``
is everything the queue manager needs from a renderer; ``MemoryStackView``
implements it in memory and backs both the console client and the tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from swipe.gestures import NEUTRAL, CardTransform, Direction, exit_transform
from swipe.models import Item

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = "No more songs available!"


@dataclass(frozen=True)
class ViewNode:
    item_id: str
    title: str
    artist_line: str
    album_line: str
    image_url: str | None
    affordances: tuple[Direction, ...] = (Direction.LEFT, Direction.RIGHT)


def render_item(item: Item) -> ViewNode:
    return ViewNode(
        item_id=item.id,
        title=item.title,
        artist_line=item.artist_line,
        album_line=item.album,
        image_url=item.thumbnail_url,
    )


class StackView(Protocol):
    def mount(self, node: ViewNode, z: int) -> None: ...

    def remove(self, item_id: str) -> None: ...

    def set_z(self, item_id: str, z: int) -> None: ...

    def set_transform(self, item_id: str, transform: CardTransform) -> None: ...

    def reset_transform(self, item_id: str) -> None: ...

    def play_exit(self, item_id: str, direction: Direction) -> None: ...

    def show_empty(self) -> None: ...

    def show_loading(self, loading: bool) -> None: ...

    def update_progress(self, processed: int, total: int) -> None: ...

    def notify(self, message: str) -> None: ...


@dataclass
class CardSlot:
    node: ViewNode
    z: int
    transform: CardTransform = NEUTRAL


@dataclass
class MemoryStackView:
    cards: dict[str, CardSlot] = field(default_factory=dict)
    empty_shown: bool = False
    loading: bool = False
    progress: tuple[int, int] = (0, 0)
    notices: list[str] = field(default_factory=list)

    def mount(self, node: ViewNode, z: int) -> None:
        self.cards[node.item_id] = CardSlot(node=node, z=z)
        self.empty_shown = False

    def remove(self, item_id: str) -> None:
        self.cards.pop(item_id, None)

    def set_z(self, item_id: str, z: int) -> None:
        if item_id in self.cards:
            self.cards[item_id].z = z

    def set_transform(self, item_id: str, transform: CardTransform) -> None:
        if item_id in self.cards:
            self.cards[item_id].transform = transform

    def reset_transform(self, item_id: str) -> None:
        self.set_transform(item_id, NEUTRAL)

    def play_exit(self, item_id: str, direction: Direction) -> None:
        self.set_transform(item_id, exit_transform(direction))

    def show_empty(self) -> None:
        self.cards.clear()
        self.empty_shown = True

    def show_loading(self, loading: bool) -> None:
        self.loading = loading

    def update_progress(self, processed: int, total: int) -> None:
        self.progress = (processed, total)

    def notify(self, message: str) -> None:
        logger.info("Notice: %s", message)
        self.notices.append(message)

    # -- read helpers --------------------------------------------------------

    def top(self) -> ViewNode | None:
        """The card with the highest stacking value."""
        if not self.cards:
            return None
        return max(self.cards.values(), key=lambda slot: slot.z).node

    def order(self) -> list[str]:
        """Visible card ids, front first."""
        return [slot.node.item_id for slot in sorted(self.cards.values(), key=lambda slot: -slot.z)]
