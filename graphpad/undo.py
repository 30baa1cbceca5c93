from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import ClassVar, Iterator, TypeAlias

from graphpad.model import DisplayPoint
from graphpad.store import RegressionSpec


@dataclass(frozen=True)
class PointAdded:
    kind: ClassVar[str] = "add_dot"
    point_id: int


@dataclass(frozen=True)
class PointMoved:
    kind: ClassVar[str] = "move_dot"
    point_id: int
    previous: DisplayPoint


@dataclass(frozen=True)
class LineAdded:
    kind: ClassVar[str] = "add_line"
    line_id: int
    layer: str


@dataclass(frozen=True)
class PiecewisePointAdded:
    kind: ClassVar[str] = "add_piecewise_point"
    point_id: int


@dataclass(frozen=True)
class ConnectedPointAdded:
    kind: ClassVar[str] = "add_connected_point"
    point_id: int


@dataclass(frozen=True)
class CurveAdded:
    kind: ClassVar[str] = "add_curve"
    layer: str
    previous: tuple[int, ...] = ()


@dataclass(frozen=True)
class RegressionAdded:
    kind: ClassVar[str] = "add_regression"
    layer: str
    previous: RegressionSpec | None = None


UndoAction: TypeAlias = (
    PointAdded | PointMoved | LineAdded | PiecewisePointAdded | ConnectedPointAdded | CurveAdded | RegressionAdded
)


class UndoLog:
    """Append-only stack of undo groups.

    Every entry is a group of one or more actions. Actions recorded inside
    ``transaction()`` share a group and are undone together.
    """

    def __init__(self) -> None:
        self._groups: list[tuple[UndoAction, ...]] = []
        self._open: list[UndoAction] | None = None
        self._depth = 0

    def record(self, action: UndoAction) -> None:
        if self._open is not None:
            self._open.append(action)
            return
        self._groups.append((action,))

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._depth == 0:
            self._open = []
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if self._depth == 0:
                group = tuple(self._open or ())
                self._open = None
                if group:
                    self._groups.append(group)

    def pop(self) -> tuple[UndoAction, ...] | None:
        if not self._groups:
            return None
        return self._groups.pop()

    def peek(self) -> tuple[UndoAction, ...] | None:
        if not self._groups:
            return None
        return self._groups[-1]

    def clear(self) -> None:
        self._groups.clear()

    def __len__(self) -> int:
        return len(self._groups)
