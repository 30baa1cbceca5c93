from __future__ import annotations

import math
from typing import Iterable

from graphpad.model import DataPoint, DisplayPoint, PlottedPoint


Bounds = tuple[float, float, float, float]


def distance(a: DisplayPoint, b: DisplayPoint) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def slope(a: DisplayPoint, b: DisplayPoint) -> float:
    """Display-space slope; nan for coincident points, +-inf for vertical lines."""
    dx = b.x - a.x
    dy = b.y - a.y
    if dx == 0:
        if dy == 0:
            return math.nan
        return math.copysign(math.inf, dy)
    return dy / dx


def extrapolate(start: DisplayPoint, end: DisplayPoint, bounds: Bounds) -> tuple[DisplayPoint, DisplayPoint] | None:
    """Stretch the line through ``start`` and ``end`` to the border of ``bounds``.

    Returns ``None`` when the two points coincide. Otherwise the returned pair
    is the maximal chord of the rectangle collinear with the input: the first
    endpoint on the left/bottom side of the travel, the second on the
    right/top side.
    """

    left, top, right, bottom = bounds
    m = slope(start, end)
    if math.isnan(m):
        return None
    if math.isinf(m):
        return (DisplayPoint(start.x, top), DisplayPoint(start.x, bottom))
    if m == 0:
        return (DisplayPoint(right, start.y), DisplayPoint(left, start.y))

    # point-slope form: y - y1 = m * (x - x1)
    x_at_top = (top - start.y) / m + start.x
    x_at_bottom = (bottom - start.y) / m + start.x
    y_at_left = m * (left - start.x) + start.y
    y_at_right = m * (right - start.x) + start.y

    if m < 0:
        # Display y grows downward, so a negative slope rises to the right.
        if y_at_left > bottom:
            first = DisplayPoint(x_at_bottom, bottom)
        else:
            first = DisplayPoint(left, y_at_left)
        if y_at_right < top:
            second = DisplayPoint(x_at_top, top)
        else:
            second = DisplayPoint(right, y_at_right)
    else:
        if y_at_left < top:
            first = DisplayPoint(x_at_top, top)
        else:
            first = DisplayPoint(left, y_at_left)
        if y_at_right > bottom:
            second = DisplayPoint(x_at_bottom, bottom)
        else:
            second = DisplayPoint(right, y_at_right)
    return (first, second)


def display_sort_key(point: PlottedPoint) -> tuple[float, float]:
    return (point.display.x, point.display.y)


def data_sort_key(point: DataPoint) -> tuple[float, float]:
    return (point.x, point.y)


def sort_data_points(points: Iterable[DataPoint]) -> list[DataPoint]:
    return sorted(points, key=data_sort_key)
