"""Numeric primitives shared by the analytics modules.

All helpers accept plain sequences, return Python floats and resolve
degenerate input (empty sequences, zero denominators) to 0 instead of
raising or producing NaN.
"""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import numpy as np


def _as_array(values: Sequence[float]) -> np.ndarray:
    arr = np.asarray(list(values), dtype=float)
    return arr[np.isfinite(arr)]


def mean(values: Sequence[float]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(arr.mean())


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0), 0 for fewer than two values."""
    arr = _as_array(values)
    if arr.size < 2:
        return 0.0
    return float(arr.std(ddof=0))


def median(values: Sequence[float]) -> float:
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.median(arr))


def z_score(value: float, center: float, spread: float, cap: float = math.inf) -> float:
    """Absolute distance of ``value`` from ``center`` in units of ``spread``.

    A zero spread yields 0 when the value sits on the center and ``cap``
    otherwise, so a constant history still flags any deviation. A positive
    spread is never capped.
    """
    distance = abs(value - center)
    if spread <= 0:
        return 0.0 if distance == 0 else cap
    return distance / spread


def linear_regression(values: Sequence[float]) -> Tuple[float, float]:
    """Ordinary least squares of ``values`` against their index 0..n-1.

    Returns:
        ``(slope, intercept)``. An empty sequence gives ``(0, 0)``; a single
        value gives a flat line through it.
    """
    y = np.asarray(list(values), dtype=float)
    n = y.size
    if n == 0:
        return 0.0, 0.0
    if n == 1:
        return 0.0, float(y[0])
    x = np.arange(n, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    return float(slope), float(intercept)


def predict_next(values: Sequence[float]) -> float:
    """Evaluate the regression line one step past the last value."""
    slope, intercept = linear_regression(values)
    return slope * len(values) + intercept


def _residuals(values: Sequence[float]) -> np.ndarray:
    y = np.asarray(list(values), dtype=float)
    slope, intercept = linear_regression(y)
    fitted = slope * np.arange(y.size, dtype=float) + intercept
    return y - fitted


def prediction_interval(values: Sequence[float], z: float = 1.96) -> Tuple[float, float]:
    """Residual-based interval around :func:`predict_next`.

    Uses the standard error of a new observation for simple linear
    regression. With fewer than three points there are no residual degrees
    of freedom and the interval collapses onto the point prediction.
    """
    predicted = predict_next(values)
    n = len(values)
    if n < 3:
        return predicted, predicted
    residuals = _residuals(values)
    sigma = math.sqrt(float(np.sum(residuals ** 2)) / (n - 2))
    x = np.arange(n, dtype=float)
    x_new = float(n)
    sxx = float(np.sum((x - x.mean()) ** 2))
    spread = sigma * math.sqrt(1 + 1 / n + (x_new - x.mean()) ** 2 / sxx)
    return predicted - z * spread, predicted + z * spread


def regression_confidence(values: Sequence[float], default: float = 0.75) -> float:
    """Confidence in [0, 1] from the residual spread relative to the level.

    ``1 - std(residuals) / mean(|y|)``. Fewer than three points returns
    ``default``.
    """
    if len(values) < 3:
        return default
    level = float(np.mean(np.abs(np.asarray(list(values), dtype=float))))
    if level == 0:
        return 1.0
    spread = float(np.std(_residuals(values), ddof=0))
    return float(min(max(1.0 - spread / level, 0.0), 1.0))


def percentage(part: float, whole: float) -> float:
    """``part / whole * 100``, 0 when ``whole`` is 0."""
    if not whole:
        return 0.0
    return part / whole * 100


def percent_change(current: float, previous: float) -> float:
    """Relative change against ``previous`` in percent, 0 without a baseline."""
    if not previous:
        return 0.0
    return (current - previous) / previous * 100
