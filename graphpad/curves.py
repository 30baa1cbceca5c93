from __future__ import annotations

from typing import Sequence

import numpy as np

from graphpad.model import DataPoint


SAMPLE_STEP = 0.1


def hermite_tangents(xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Secant slopes and harmonic-mean tangents for sorted knots.

    Returns ``(secants, tangents)`` where ``secants[i]`` is the slope of the
    interval ending at knot ``i + 1`` and ``tangents`` holds one value per knot.
    """

    h = np.diff(xs)
    k = np.diff(ys)
    with np.errstate(divide="ignore", invalid="ignore"):
        secants = np.where(h != 0, k / np.where(h != 0, h, 1.0), 0.0)
    secants[~np.isfinite(secants)] = 0.0

    n = xs.size - 1
    tangents = np.zeros(xs.size, dtype=np.float64)
    if n == 1:
        tangents[:] = secants[0]
        return secants, tangents

    left = secants[:-1]
    right = secants[1:]
    same_sign = (left * right) > 0
    with np.errstate(divide="ignore", invalid="ignore"):
        harmonic = np.where(same_sign, (2.0 * left * right) / np.where(same_sign, left + right, 1.0), 0.0)
    # Opposite or zero secants flatten the tangent so extrema do not overshoot.
    tangents[1:n] = harmonic
    tangents[0] = 2.0 * secants[0] - tangents[1]
    tangents[n] = 2.0 * secants[n - 1] - tangents[n - 1]
    return secants, tangents


def smooth_curve(points: Sequence[DataPoint], step: float = SAMPLE_STEP) -> list[DataPoint]:
    """Sample a monotone-friendly cubic Hermite curve through ``points``.

    ``points`` must already be sorted by x (ties by y). Every input point is
    reproduced exactly, in order, with samples every ``step`` data units in
    between.
    """

    if step <= 0:
        raise ValueError("step must be > 0")
    if len(points) < 2:
        return list(points)

    xs = np.asarray([p.x for p in points], dtype=np.float64)
    ys = np.asarray([p.y for p in points], dtype=np.float64)
    secants, tangents = hermite_tangents(xs, ys)

    curve: list[DataPoint] = [points[0]]
    for i in range(1, xs.size):
        x0 = xs[i - 1]
        x1 = xs[i]
        h = x1 - x0
        if h > 0:
            s = secants[i - 1]
            m0 = tangents[i - 1]
            m1 = tangents[i]
            a = ys[i - 1]
            b = m0
            c = (3.0 * s - 2.0 * m0 - m1) / h
            d = (m0 + m1 - 2.0 * s) / (h * h)

            offsets = np.arange(1, int(np.ceil(h / step)) + 1, dtype=np.float64) * step
            offsets = offsets[x0 + offsets < x1]
            values = a + b * offsets + c * offsets**2 + d * offsets**3
            curve.extend(DataPoint(float(x0 + t), float(v)) for t, v in zip(offsets, values))
        curve.append(points[i])
    return curve
