from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Literal, Sequence

import numpy as np

from graphpad.coordinates import CoordinateMapper
from graphpad.curves import smooth_curve
from graphpad.geometry import extrapolate, sort_data_points
from graphpad.grid import GridParameters
from graphpad.model import DataPoint, DisplayPoint


LOGGER = logging.getLogger(__name__)

RegressionKind = Literal["linear", "quadratic", "exponential"]
REGRESSION_KINDS: tuple[str, ...] = ("linear", "quadratic", "exponential")

# The exponential family is drawn with this truncated value of e.
EULER_APPROX = 2.718


@dataclass(frozen=True)
class RegressionResult:
    kind: RegressionKind
    coefficients: tuple[float, ...]
    data: list[DataPoint] = field(default_factory=list)
    display: list[DisplayPoint] = field(default_factory=list)


def fit_linear(points: Sequence[DataPoint]) -> tuple[tuple[float, ...], tuple[DataPoint, DataPoint]] | None:
    """Least-squares line; returns ``((slope, intercept), (left, right))`` fitted extremes."""

    if len(points) < 2:
        return None
    xs = np.asarray([p.x for p in points], dtype=np.float64)
    ys = np.asarray([p.y for p in points], dtype=np.float64)
    if np.ptp(xs) == 0:
        if np.ptp(ys) == 0:
            return None
        x = float(xs[0])
        return ((float("inf"), x), (DataPoint(x, float(ys.min())), DataPoint(x, float(ys.max()))))
    slope, intercept = np.polyfit(xs, ys, 1)
    fitted = sort_data_points(DataPoint(float(x), float(slope * x + intercept)) for x in xs)
    return ((float(slope), float(intercept)), (fitted[0], fitted[-1]))


def fit_quadratic(points: Sequence[DataPoint]) -> tuple[float, float, float] | None:
    """Degree-2 least-squares coefficients ``(c0, c1, c2)`` for ``c0 + c1*x + c2*x**2``."""

    xs = np.asarray([p.x for p in points], dtype=np.float64)
    if np.unique(xs).size < 3:
        return None
    ys = np.asarray([p.y for p in points], dtype=np.float64)
    c2, c1, c0 = np.polyfit(xs, ys, 2)
    return (float(c0), float(c1), float(c2))


def fit_exponential(points: Sequence[DataPoint]) -> tuple[float, float] | None:
    """Coefficients ``(a, b)`` of ``y = a * e**(b*x)``.

    Log-linear least squares weighted by y, so large values are not
    under-fitted after the log transform. Only points with y > 0 take part.
    """

    usable = [p for p in points if p.y > 0]
    xs = np.asarray([p.x for p in usable], dtype=np.float64)
    if xs.size < 2 or np.ptp(xs) == 0:
        return None
    ys = np.asarray([p.y for p in usable], dtype=np.float64)
    b, log_a = np.polyfit(xs, np.log(ys), 1, w=np.sqrt(ys))
    return (float(np.exp(log_a)), float(b))


def column_values(grid: GridParameters) -> np.ndarray:
    """Data x value of every grid column line, left to right."""
    columns = np.arange(grid.units_wide + 1, dtype=np.float64)
    return grid.effective_scale_start_x + columns * grid.scale_factor_x


def quadratic_samples(points: Sequence[DataPoint], grid: GridParameters) -> tuple[tuple[float, ...], list[DataPoint]]:
    sx = grid.scale_factor_x
    sy = grid.scale_factor_y
    normalized = [DataPoint(p.x / sx, p.y / sy) for p in points]
    coeffs = fit_quadratic(normalized)
    if coeffs is None:
        return ((), [])
    c0, c1, c2 = coeffs
    xs = column_values(grid) / sx
    knots = sort_data_points(DataPoint(float(x), float(c0 + c1 * x + c2 * x * x)) for x in xs)
    curve = smooth_curve(knots)
    return (coeffs, [DataPoint(p.x * sx, p.y * sy) for p in curve])


def exponential_samples(points: Sequence[DataPoint], grid: GridParameters) -> tuple[tuple[float, ...], list[DataPoint]]:
    coeffs = fit_exponential(points)
    if coeffs is None:
        return ((), [])
    a, b = coeffs
    xs = column_values(grid)
    knots = sort_data_points(DataPoint(float(x), float(a * EULER_APPROX ** (b * x))) for x in xs)
    return (coeffs, smooth_curve(knots))


def compute_regression(
    points: Sequence[DataPoint],
    kind: str,
    mapper: CoordinateMapper,
) -> RegressionResult | None:
    """Fit ``points`` and return the samples to draw, or ``None`` for degenerate input."""

    if kind == "linear":
        fitted = fit_linear(points)
        if fitted is None:
            LOGGER.debug("linear regression skipped: fewer than two distinct points")
            return None
        coeffs, (left, right) = fitted
        # Unclamped, so extremes beyond the grid keep the fitted slope.
        start = mapper.to_display(left, snap=False, clamp=False)
        end = mapper.to_display(right, snap=False, clamp=False)
        chord = extrapolate(start, end, mapper.grid.bounds)
        display = list(chord) if chord is not None else [mapper.clamp(start), mapper.clamp(end)]
        return RegressionResult(
            kind="linear",
            coefficients=coeffs,
            data=[mapper.to_data(d, snap=False) for d in display],
            display=display,
        )
    if kind == "quadratic":
        coeffs, samples = quadratic_samples(points, mapper.grid)
    elif kind == "exponential":
        coeffs, samples = exponential_samples(points, mapper.grid)
    else:
        raise ValueError(f"unknown regression kind: {kind}")
    if not samples:
        LOGGER.debug("%s regression skipped: not enough usable points", kind)
        return None
    return RegressionResult(
        kind=kind,  # type: ignore[arg-type]
        coefficients=coeffs,
        data=samples,
        display=[mapper.to_display(p, snap=False) for p in samples],
    )
