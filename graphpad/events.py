from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from graphpad.model import DisplayPoint


PointerEventType = Literal["pointer_down", "pointer_move", "pointer_up"]


@dataclass(frozen=True)
class PointerEvent:
    """Pointer sample in drawing-surface pixels, as delivered by the host."""

    event_type: PointerEventType
    x: float
    y: float
    timestamp: float = 0.0

    @property
    def position(self) -> DisplayPoint:
        return DisplayPoint(self.x, self.y)


def pointer_down(x: float, y: float, timestamp: float = 0.0) -> PointerEvent:
    return PointerEvent("pointer_down", x, y, timestamp)


def pointer_move(x: float, y: float, timestamp: float = 0.0) -> PointerEvent:
    return PointerEvent("pointer_move", x, y, timestamp)


def pointer_up(x: float, y: float, timestamp: float = 0.0) -> PointerEvent:
    return PointerEvent("pointer_up", x, y, timestamp)
