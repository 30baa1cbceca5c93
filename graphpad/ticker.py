from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable


DRAG_FPS = 40


@dataclass
class DragTicker:
    """Fixed-rate tick source that only runs while a drag is active."""

    fps: int = DRAG_FPS
    paused: bool = True
    _listeners: list[Callable[[], None]] = field(default_factory=list)
    _next_tick_at: float | None = None

    def __post_init__(self) -> None:
        if self.fps <= 0:
            raise ValueError("fps must be > 0")

    @property
    def interval(self) -> float:
        return 1.0 / float(self.fps)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: Callable[[], None]) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def resume(self) -> None:
        if self.paused:
            self.paused = False
            self._next_tick_at = None

    def pause(self) -> None:
        self.paused = True
        self._next_tick_at = None

    def advance(self, now: float) -> bool:
        """Fire listeners if a tick is due at ``now``; returns whether it fired."""
        if self.paused:
            return False
        if self._next_tick_at is None:
            self._next_tick_at = now
        if now < self._next_tick_at:
            return False
        dt = self.interval
        while self._next_tick_at <= now:
            self._next_tick_at += dt
        self.fire()
        return True

    def fire(self) -> None:
        if self.paused:
            return
        for listener in list(self._listeners):
            listener()
