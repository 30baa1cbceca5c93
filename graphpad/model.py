from __future__ import annotations

from dataclasses import asdict, dataclass, replace
import re
from typing import TYPE_CHECKING, Any, Literal, Mapping

if TYPE_CHECKING:
    from graphpad.coordinates import CoordinateMapper


LineKind = Literal["SEGMENT", "EXTENDED", "PIECEWISE", "CURVE", "CONNECTED"]
MarkerShape = Literal["circle", "square"]

LINE_KINDS: tuple[str, ...] = ("SEGMENT", "EXTENDED", "PIECEWISE", "CURVE", "CONNECTED")

_HEX_COLOR = re.compile(r"^#([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_STYLE_ALIASES = {
    "strokeSize": "stroke_size",
    "noDots": "no_dots",
    "fontSize": "font_size",
    "fontColor": "font_color",
}


@dataclass(frozen=True)
class DataPoint:
    x: float
    y: float


@dataclass(frozen=True)
class DisplayPoint:
    x: float
    y: float


@dataclass(frozen=True)
class LayerStyle:
    size: float = 8.0
    color: str = "#EE0000"
    fill: str = "#EE0000"
    stroke_size: float = 0.5
    shape: MarkerShape = "circle"
    shadow: str = "#dddddd"
    no_dots: bool = False
    font: str = "Arial"
    font_size: float = 12.0
    font_color: str = "#000000"

    def to_mapping(self) -> dict[str, Any]:
        out = asdict(self)
        for alias, name in _STYLE_ALIASES.items():
            out[alias] = out.pop(name)
        return out


DEFAULT_LAYER_STYLE = LayerStyle()


def merge_layer_style(base: LayerStyle, overrides: Mapping[str, Any] | None = None) -> LayerStyle:
    """Validate style overrides and merge them over ``base`` as a new value."""

    if not overrides:
        return base
    known = asdict(base)
    changes: dict[str, Any] = {}
    for key, value in overrides.items():
        name = _STYLE_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown layer style key: {key}")
        changes[name] = value

    for name in ("color", "fill", "shadow", "font_color"):
        if name in changes and (not isinstance(changes[name], str) or not _HEX_COLOR.match(changes[name])):
            raise ValueError(f"Style `{name}` must be a hex color")
    for name in ("size", "font_size"):
        if name in changes:
            value = changes[name]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or float(value) <= 0:
                raise ValueError(f"Style `{name}` must be a positive number")
            changes[name] = float(value)
    if "stroke_size" in changes:
        value = changes["stroke_size"]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or float(value) < 0:
            raise ValueError("Style `stroke_size` must be a non-negative number")
        changes["stroke_size"] = float(value)
    if "shape" in changes and changes["shape"] not in ("circle", "square"):
        raise ValueError("Style `shape` must be `circle` or `square`")
    if "no_dots" in changes and not isinstance(changes["no_dots"], bool):
        raise ValueError("Style `no_dots` must be a boolean")
    if "font" in changes and (not isinstance(changes["font"], str) or not changes["font"].strip()):
        raise ValueError("Style `font` must be a non-empty string")
    return replace(base, **changes)


@dataclass
class Layer:
    name: str
    style: LayerStyle = DEFAULT_LAYER_STYLE
    persist: bool = False


@dataclass
class PlottedPoint:
    """A data point paired with its display position on one layer."""

    id: int
    layer: str
    data: DataPoint
    display: DisplayPoint
    highlighted: bool = False
    hidden: bool = False
    movable: bool = True
    label: str | None = None

    def move_to_data(self, data: DataPoint, mapper: "CoordinateMapper", *, snap: bool = True) -> None:
        self.display = mapper.to_display(data, snap=snap)
        self.data = mapper.to_data(self.display, snap=snap)

    def move_to_display(self, display: DisplayPoint, mapper: "CoordinateMapper", *, snap: bool = True) -> None:
        self.data = mapper.to_data(display, snap=snap)
        self.display = mapper.to_display(self.data, snap=snap)


@dataclass
class PlottedLine:
    id: int
    layer: str
    start_id: int
    end_id: int
    kind: LineKind = "SEGMENT"
    hidden: bool = False
    # EXTENDED lines only; owned by the line and never registered, so it is
    # neither hit-tested nor dragged.
    label_anchor: PlottedPoint | None = None
