"""Gesture resolution: drag displacement and key presses to swipe directions.

Pure functions plus a small per-card ``DragState``; no view or queue state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Direction(Enum):
    LEFT = "left"  # remove from liked songs
    RIGHT = "right"  # keep / skip


SWIPE_THRESHOLD = 100.0
ROTATION_FACTOR = 0.1
EXIT_DISTANCE = 1000.0
EXIT_ROTATION = 30.0

KEY_BINDINGS: dict[str, Direction] = {
    "ArrowLeft": Direction.LEFT,
    "ArrowRight": Direction.RIGHT,
}
CANCEL_KEY = "Escape"


@dataclass(frozen=True)
class CardTransform:
    """Visual offset of one card: translation, rotation, affordance hint."""

    translate_x: float = 0.0
    rotation: float = 0.0
    affordance: Direction | None = None
    affordance_opacity: float = 0.0


NEUTRAL = CardTransform()


@dataclass
class DragState:
    """Drag bookkeeping for one card, alive for one gesture only."""

    start_x: float
    start_y: float
    dragging: bool = True
    initial_rotation: float = 0.0
    current_x: float | None = None

    @property
    def delta_x(self) -> float:
        if self.current_x is None:
            return 0.0
        return self.current_x - self.start_x

    def move(self, x: float) -> float:
        self.current_x = x
        return self.delta_x


def drag_transform(delta_x: float, initial_rotation: float = 0.0) -> CardTransform:
    """Transform for a card being dragged ``delta_x`` pixels from its start."""
    if delta_x > 0:
        affordance: Direction | None = Direction.RIGHT
    elif delta_x < 0:
        affordance = Direction.LEFT
    else:
        affordance = None
    return CardTransform(
        translate_x=delta_x,
        rotation=initial_rotation + delta_x * ROTATION_FACTOR,
        affordance=affordance,
        affordance_opacity=min(abs(delta_x) / SWIPE_THRESHOLD, 1.0),
    )


def resolve_release(delta_x: float) -> Direction | None:
    """Direction committed by releasing at ``delta_x``, or None to snap back."""
    if abs(delta_x) <= SWIPE_THRESHOLD:
        return None
    return Direction.RIGHT if delta_x > 0 else Direction.LEFT


def direction_for_key(key: str) -> Direction | None:
    return KEY_BINDINGS.get(key)


def exit_transform(direction: Direction) -> CardTransform:
    """Off-screen end position for a committed card."""
    sign = 1.0 if direction is Direction.RIGHT else -1.0
    return CardTransform(
        translate_x=sign * EXIT_DISTANCE,
        rotation=sign * EXIT_ROTATION,
        affordance=direction,
        affordance_opacity=1.0,
    )
