"""Series statistics used by every gate.

All functions are pure and return plain ``float`` values.  Empty input
returns ``0.0`` rather than ``nan`` so a missing series can never leak NaN
into an edge or a score.

Historical series are ordered **most recent first** throughout the engine;
:func:`recent` relies on that.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


def median(values: Sequence[float]) -> float:
    """Median of ``values`` (mean of the middle pair for even lengths)."""
    if len(values) == 0:
        return 0.0
    return float(np.median(np.asarray(values, dtype=float)))


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def variance(values: Sequence[float]) -> float:
    """Population variance (``ddof=0``)."""
    if len(values) == 0:
        return 0.0
    return float(np.var(np.asarray(values, dtype=float)))


def stddev(values: Sequence[float]) -> float:
    """Population standard deviation (``ddof=0``)."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def minimum(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.min(np.asarray(values, dtype=float)))


def recent(values: Sequence[float], n: int) -> Sequence[float]:
    """The ``n`` most recent observations."""
    return values[:n]


def hit_rate_over(values: Sequence[float], line: float) -> float:
    """Fraction of observations at or above ``line``."""
    if len(values) == 0:
        return 0.0
    return sum(1 for v in values if v >= line) / len(values)


def hit_rate_under(values: Sequence[float], line: float) -> float:
    """Fraction of observations at or below ``line``."""
    if len(values) == 0:
        return 0.0
    return sum(1 for v in values if v <= line) / len(values)


def count_over(values: Sequence[float], line: float) -> int:
    return sum(1 for v in values if v >= line)


def count_under(values: Sequence[float], line: float) -> int:
    return sum(1 for v in values if v <= line)
