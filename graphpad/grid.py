from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import tomllib
from typing import Any, Mapping


# Host style records use the grid component's camelCase names.
_GRID_KEYS = {
    "unitSizeX": "unit_size_x",
    "unitSizeY": "unit_size_y",
    "unitsWide": "units_wide",
    "unitsHigh": "units_high",
    "scaleFactorX": "scale_factor_x",
    "scaleFactorY": "scale_factor_y",
    "scaleStartX": "scale_start_x",
    "scaleStartY": "scale_start_y",
    "decimalX": "decimal_x",
    "decimalY": "decimal_y",
    "originoffsetX": "origin_offset_x",
    "originoffsetY": "origin_offset_y",
    "gridLeft": "grid_left",
    "gridTop": "grid_top",
}
_SNAP_KEYS = {
    "snap": "enabled",
    "snapScaleX": "step_x",
    "snapScaleY": "step_y",
}
_INT_FIELDS = {"units_wide", "units_high", "decimal_x", "decimal_y"}


@dataclass(frozen=True)
class GridParameters:
    """Read-only scale and placement constants of the background grid."""

    unit_size_x: float = 30.0
    unit_size_y: float = 30.0
    units_wide: int = 10
    units_high: int = 10
    scale_factor_x: float = 1.0
    scale_factor_y: float = 1.0
    scale_start_x: float = 0.0
    scale_start_y: float = 0.0
    decimal_x: int = 0
    decimal_y: int = 0
    origin_offset_x: float = 0.0
    origin_offset_y: float = 0.0
    grid_left: float = 10.0
    grid_top: float = 15.0

    def __post_init__(self) -> None:
        if self.unit_size_x <= 0 or self.unit_size_y <= 0:
            raise ValueError("unit sizes must be > 0")
        if self.units_wide <= 0 or self.units_high <= 0:
            raise ValueError("units_wide and units_high must be > 0")
        if self.scale_factor_x == 0 or self.scale_factor_y == 0:
            raise ValueError("scale factors must be non-zero")
        if self.decimal_x < 0 or self.decimal_y < 0:
            raise ValueError("decimal precision must be >= 0")

    @property
    def grid_width(self) -> float:
        return self.units_wide * self.unit_size_x

    @property
    def grid_height(self) -> float:
        return self.units_high * self.unit_size_y

    @property
    def origin(self) -> tuple[float, float]:
        """Pixel position of the scale start: the grid's bottom-left corner."""
        return (self.grid_left, self.grid_top + self.grid_height)

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return (self.grid_left, self.grid_top, self.grid_left + self.grid_width, self.grid_top + self.grid_height)

    @property
    def effective_scale_start_x(self) -> float:
        # Quadrant layouts move the origin into the grid, which shifts the value at the corner.
        return self.scale_start_x - self.origin_offset_x * self.scale_factor_x

    @property
    def effective_scale_start_y(self) -> float:
        return self.scale_start_y - self.origin_offset_y * self.scale_factor_y


@dataclass(frozen=True)
class SnapSettings:
    enabled: bool = True
    step_x: float | None = None
    step_y: float | None = None

    def __post_init__(self) -> None:
        for label, step in (("step_x", self.step_x), ("step_y", self.step_y)):
            if step is not None and step <= 0:
                raise ValueError(f"{label} must be > 0 when provided")

    def resolved(self, grid: GridParameters) -> tuple[float, float]:
        """Snap granularity per axis; an unset step falls back to the scale factor."""
        sx = self.step_x if self.step_x is not None else abs(grid.scale_factor_x)
        sy = self.step_y if self.step_y is not None else abs(grid.scale_factor_y)
        return (float(sx), float(sy))


@dataclass(frozen=True)
class GraphStyle:
    grid: GridParameters = field(default_factory=GridParameters)
    snap: SnapSettings = field(default_factory=SnapSettings)
    # Background-only settings (labels, colors, arrowheads) kept for the grid renderer.
    extras: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "GraphStyle":
        if not raw:
            return cls()
        grid_kwargs: dict[str, Any] = {}
        snap_kwargs: dict[str, Any] = {}
        extras: dict[str, Any] = {}
        for key, value in raw.items():
            if key in ("unitSize", "unit_size"):
                grid_kwargs.setdefault("unit_size_x", _coerce_number(value, key))
                grid_kwargs.setdefault("unit_size_y", _coerce_number(value, key))
            elif key in _GRID_KEYS or key in _GRID_KEYS.values():
                name = _GRID_KEYS.get(key, key)
                grid_kwargs[name] = _coerce_number(value, key, integer=name in _INT_FIELDS)
            elif key in _SNAP_KEYS or key in _SNAP_KEYS.values():
                name = _SNAP_KEYS.get(key, key)
                if name == "enabled":
                    if not isinstance(value, bool):
                        raise ValueError(f"`{key}` must be a boolean")
                    snap_kwargs[name] = value
                elif value is not None:
                    snap_kwargs[name] = _coerce_number(value, key)
            else:
                extras[key] = value
        return cls(grid=GridParameters(**grid_kwargs), snap=SnapSettings(**snap_kwargs), extras=extras)

    def to_mapping(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extras)
        for key, name in _GRID_KEYS.items():
            out[key] = getattr(self.grid, name)
        out["snap"] = self.snap.enabled
        if self.snap.step_x is not None:
            out["snapScaleX"] = self.snap.step_x
        if self.snap.step_y is not None:
            out["snapScaleY"] = self.snap.step_y
        return out


def load_graph_style(path: str | Path) -> GraphStyle:
    """Read a graph style record from a TOML file.

    The file holds the same flat keys a host would pass inline, optionally
    nested under a ``[graph]`` table.
    """

    style_path = Path(path)
    if not style_path.exists():
        raise FileNotFoundError(f"graph style not found: {style_path}")
    with style_path.open("rb") as f:
        raw = tomllib.load(f)
    section = raw.get("graph", raw)
    if not isinstance(section, dict):
        raise ValueError("`graph` must be a table")
    return GraphStyle.from_mapping(section)


def _coerce_number(value: Any, key: str, *, integer: bool = False) -> float | int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"`{key}` must be a number")
    if integer:
        if float(value) != int(value):
            raise ValueError(f"`{key}` must be an integer")
        return int(value)
    return float(value)
