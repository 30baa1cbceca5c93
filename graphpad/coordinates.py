from __future__ import annotations

from decimal import Decimal
import math

from graphpad.grid import GridParameters, SnapSettings
from graphpad.model import DataPoint, DisplayPoint


ON_GRID_TOLERANCE_PX = 20.0


class CoordinateMapper:
    """Maps data coordinates to display pixels and back for one grid."""

    def __init__(self, grid: GridParameters, snap: SnapSettings | None = None) -> None:
        self._grid = grid
        self._snap = snap or SnapSettings()
        self._step_x, self._step_y = self._snap.resolved(grid)
        self._decimals_x = max(grid.decimal_x, _decimals_of(self._step_x), _decimals_of(grid.effective_scale_start_x))
        self._decimals_y = max(grid.decimal_y, _decimals_of(self._step_y), _decimals_of(grid.effective_scale_start_y))

    @property
    def grid(self) -> GridParameters:
        return self._grid

    @property
    def snap_steps(self) -> tuple[float, float]:
        return (self._step_x, self._step_y)

    def to_display(self, point: DataPoint, snap: bool = True, clamp: bool = True) -> DisplayPoint:
        g = self._grid
        # Offsets from the scale start.
        x = float(point.x) - g.effective_scale_start_x
        y = float(point.y) - g.effective_scale_start_y
        if snap and self._snap.enabled:
            x = round(_snap_offset(x, self._step_x), self._decimals_x)
            y = round(_snap_offset(y, self._step_y), self._decimals_y)

        ox, oy = g.origin
        px = ox + (x / g.scale_factor_x) * g.unit_size_x
        py = oy - (y / g.scale_factor_y) * g.unit_size_y
        display = DisplayPoint(px, py)
        return self.clamp(display) if clamp else display

    def to_data(self, point: DisplayPoint, snap: bool = True) -> DataPoint:
        # Clamp before inverting so off-grid pixels map to in-range values.
        d = self.clamp(point)
        g = self._grid
        ox, oy = g.origin
        x = ((d.x - ox) / g.unit_size_x) * g.scale_factor_x
        y = ((oy - d.y) / g.unit_size_y) * g.scale_factor_y
        if snap and self._snap.enabled:
            x = _snap_offset(x, self._step_x)
            y = _snap_offset(y, self._step_y)
            return DataPoint(
                round(g.effective_scale_start_x + x, self._decimals_x),
                round(g.effective_scale_start_y + y, self._decimals_y),
            )
        return DataPoint(g.effective_scale_start_x + x, g.effective_scale_start_y + y)

    def point_pair(self, point: DataPoint, snap: bool = True) -> tuple[DataPoint, DisplayPoint]:
        """Canonical data/display pair for a data point."""
        display = self.to_display(point, snap=snap)
        return (self.to_data(display, snap=snap), display)

    def display_pair(self, point: DisplayPoint, snap: bool = True) -> tuple[DataPoint, DisplayPoint]:
        """Canonical data/display pair for a pixel position."""
        data = self.to_data(point, snap=snap)
        return (data, self.to_display(data, snap=snap))

    def clamp(self, point: DisplayPoint) -> DisplayPoint:
        left, top, right, bottom = self._grid.bounds
        x = min(max(point.x, left), right)
        y = min(max(point.y, top), bottom)
        return DisplayPoint(x, y)

    def is_on_grid(self, point: DisplayPoint, tolerance: float = ON_GRID_TOLERANCE_PX) -> bool:
        left, top, right, bottom = self._grid.bounds
        return (left - tolerance) < point.x < (right + tolerance) and (top - tolerance) < point.y < (bottom + tolerance)


def _snap_offset(value: float, step: float) -> float:
    """Nearest multiple of `step`; halves round up."""
    return math.floor(value / step + 0.5) * step


def _decimals_of(value: float) -> int:
    if not math.isfinite(value):
        return 6
    if value == 0:
        return 0
    d = Decimal(str(abs(value))).normalize()
    exp = d.as_tuple().exponent
    return min(12, max(0, -int(exp)))
