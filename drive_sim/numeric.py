"""Numeric helpers shared by the plant, controllers and planners.

Small scalar and array utilities: clamping (including the sign-preserving
regulated clamp used by the PID), interpolation, sorted-table lookup and a
least-squares slope for characterisation runs.
"""

import math
from typing import Sequence, Tuple

import numpy as np


def clamp_num(num: float, low: float, high: float) -> float:
    """Clamp a number to the closed range [low, high]."""
    return max(low, min(high, num))


def is_between(num: float, low: float, high: float) -> bool:
    """Return True if ``low <= num <= high``."""
    return low <= num <= high


def regulated_clamp(num: float, low: float, high: float) -> float:
    """Clamp a number's magnitude between a floor and a ceiling, keeping its sign.

    The bounds are taken as magnitudes. Values larger than ``high`` in magnitude
    are cut to ``high``; values inside ``[-low, low]`` are pushed out to ``low``.

    Args:
        num: Value to clamp.
        low: Minimum output magnitude.
        high: Maximum output magnitude.

    Returns:
        Clamped value with the sign of ``num``.

    Example:
        >>> regulated_clamp(-1.2, 0.2, 1.0)
        -1.0
        >>> regulated_clamp(-0.1, 0.2, 1.0)
        -0.2
    """
    low = abs(low)
    high = abs(high)

    if abs(num) > high:
        return math.copysign(high, num)
    elif is_between(num, -low, low):
        return math.copysign(low, num)

    return num


def fuzzy_equals(a: float, b: float, eps: float) -> bool:
    """Return True if ``a`` and ``b`` differ by at most ``eps``."""
    return abs(a - b) <= eps


def min_mag(a: float, b: float) -> float:
    """Return whichever of two numbers has the smaller magnitude."""
    return a if abs(a) < abs(b) else b


def interpolate(y: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """Linearly interpolate the x value corresponding to ``y``.

    Args:
        y: Input value to find the x value of.
        x1: Bottom x value.
        y1: Bottom y value.
        x2: Top x value.
        y2: Top y value.

    Returns:
        Interpolated x value, or ``x1`` when the two y values coincide.
    """
    if y2 - y1 == 0:
        return x1
    return (y - y1) * (x2 - x1) / (y2 - y1) + x1


def find_sandwiched_elements(values: Sequence[float], value: float, eps: float) -> Tuple[int, int]:
    """Find the indices of the elements of an ascending list bracketing ``value``.

    Returns ``(i, i)`` when an element equals ``value`` within ``eps``,
    ``(i - 1, i)`` when it falls strictly between two neighbours, and the
    nearest boundary index twice when it lies outside the list.
    """
    if fuzzy_equals(values[0], value, eps):
        return 0, 0

    for i in range(1, len(values)):
        if fuzzy_equals(values[i], value, eps):
            return i, i

        if values[i - 1] < value < values[i]:
            return i - 1, i

    key = 0 if value < values[0] else len(values) - 1
    return key, key


def regressed_slope(x: Sequence[float], y: Sequence[float]) -> float:
    """Least-squares slope of ``y`` against ``x``.

    Raises:
        ValueError: If the two sequences have different lengths.
    """
    if len(x) != len(y):
        raise ValueError(
            f"Arrays must be same size! x array size: {len(x)}, y array size: {len(y)}"
        )

    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)

    x_devs = x_arr - x_arr.mean()
    y_devs = y_arr - y_arr.mean()

    return float(np.sum(x_devs * y_devs) / np.sum(x_devs**2))


def string_to_num(text: str) -> float:
    """Parse a number from text, defaulting to zero when it is malformed."""
    try:
        return float(text)
    except (TypeError, ValueError):
        return 0.0

