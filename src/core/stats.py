"""
Small numeric helpers shared by session performance and cross-session analytics.
"""

from __future__ import annotations

import math
from collections.abc import Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty sequence."""
    return sum(values) / len(values) if values else 0.0


def population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mu = mean(values)
    return sum((v - mu) ** 2 for v in values) / len(values)


def consistency(values: Sequence[float]) -> float:
    """1 - standard deviation, floored at 0. Always within [0, 1] for 0-1 scores."""
    return min(1.0, max(0.0, 1.0 - math.sqrt(population_variance(values))))


def least_squares_slope(values: Sequence[float]) -> float:
    """
    Slope of the ordinary least-squares line through (index, value).

    Returns 0 for fewer than two points.
    """
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = n * (n - 1) / 2
    sum_xx = (n - 1) * n * (2 * n - 1) / 6
    sum_y = sum(values)
    sum_xy = sum(i * y for i, y in enumerate(values))

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return 0.0
    return (n * sum_xy - sum_x * sum_y) / denominator
