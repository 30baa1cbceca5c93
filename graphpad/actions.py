from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

from graphpad.model import LINE_KINDS, LineKind


@dataclass(frozen=True)
class PlaceDot:
    layer: str


@dataclass(frozen=True)
class PlaceLine:
    layer: str
    kind: LineKind = "EXTENDED"
    allow_multiple: bool = True
    label: str | None = None
    # Live-follow placement: the start point tracks the pointer until release.
    animated: bool = False

    def __post_init__(self) -> None:
        kind = str(self.kind).upper()
        if kind not in LINE_KINDS:
            raise ValueError(f"unknown line kind: {self.kind}")
        object.__setattr__(self, "kind", kind)


@dataclass(frozen=True)
class PlaceConnected:
    layer: str
    label: str | None = None


@dataclass(frozen=True)
class PlacePiecewise:
    layer: str


@dataclass(frozen=True)
class PlaceCurve:
    layer: str


ClickAction: TypeAlias = PlaceDot | PlaceLine | PlaceConnected | PlacePiecewise | PlaceCurve


def click_action_from_name(layer: str, name: str, *args: object) -> ClickAction:
    """Build a click action from the host's mode name ("dot", "line", ...)."""

    mode = name.lower()
    if mode == "dot":
        return PlaceDot(layer)
    if mode == "line":
        kind = str(args[0]) if len(args) > 0 and args[0] else "EXTENDED"
        allow_multiple = bool(args[1]) if len(args) > 1 and args[1] is not None else True
        label = str(args[2]) if len(args) > 2 and args[2] else None
        animated = bool(args[3]) if len(args) > 3 else False
        return PlaceLine(layer, kind=kind, allow_multiple=allow_multiple, label=label, animated=animated)  # type: ignore[arg-type]
    if mode == "connected":
        label = str(args[0]) if len(args) > 0 and args[0] else None
        return PlaceConnected(layer, label=label)
    if mode == "piecewise":
        return PlacePiecewise(layer)
    if mode == "curve":
        return PlaceCurve(layer)
    raise ValueError(f"unknown click action: {name}")
