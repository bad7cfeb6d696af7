"""
Usage-shock detection.

A "shock" is anything that makes the historical series a poor guide to the
next game: a sudden jump in minutes, usage or shot volume over the last few
games, several teammates out, or a new starting role.  A shocked candidate is
not rejected outright; it must pass a secondary validation on its most recent
games instead:

    last-5 hit rate   >= shock_validation_hit_rate   (0.6)
    last-5 median margin over the line >= shock_validation_margin   (0.5)

Both are oriented to the chosen side.
"""

import logging
from typing import Sequence, Tuple

from medianlock.core import stats
from medianlock.core.config import EngineConfig
from medianlock.core.contracts import Candidate, ShockInfo, Side

logger = logging.getLogger(__name__)


def _series_or_baseline(series: Sequence[float], length: int, baseline: float) -> Sequence[float]:
    """Missing feeds become a flat baseline series, which can never surge."""
    if len(series) == 0:
        return [baseline] * length
    return series


def _surge(series: Sequence[float], window: int) -> float:
    """Mean of the ``window`` most recent games minus the full-series median."""
    return stats.mean(stats.recent(series, window)) - stats.median(series)


def recent_form(
    values: Sequence[float], line: float, side: Side, window: int
) -> Tuple[float, float]:
    """Return ``(hit_rate, margin)`` over the ``window`` most recent games.

    ``margin`` is the window median's distance past the line on ``side``.
    """
    window_values = stats.recent(values, window)
    window_median = stats.median(window_values)
    if side == Side.UNDER:
        return stats.hit_rate_under(window_values, line), line - window_median
    return stats.hit_rate_over(window_values, line), window_median - line


def detect_shock(candidate: Candidate, side: Side, config: EngineConfig) -> ShockInfo:
    """
    Flag usage shocks for ``candidate`` and, if shocked, validate them.

    Args:
        candidate: Candidate under evaluation.
        side: Side chosen by the side selector (OVER or UNDER).
        config: Shock deltas and validation thresholds.

    Returns:
        :class:`ShockInfo`.  ``passed_validation`` is ``True`` when nothing
        was flagged.
    """
    n = candidate.observations
    minutes = candidate.minutes
    usage = _series_or_baseline(candidate.usage, n, config.default_usage)
    shots = _series_or_baseline(candidate.shot_attempts, n, config.default_shot_attempts)

    reasons = []

    minutes_surge = _surge(minutes, config.shock_window)
    minutes_shock = minutes_surge >= config.minutes_shock_delta
    if minutes_shock:
        reasons.append(f"Minutes surge: +{minutes_surge:.1f}")

    usage_surge = _surge(usage, config.shock_window)
    usage_shock = usage_surge >= config.usage_shock_delta
    if usage_shock:
        reasons.append(f"Usage surge: +{usage_surge:.1f}%")

    shots_surge = _surge(shots, config.shock_window)
    shots_shock = shots_surge >= config.shots_shock_delta
    if shots_shock:
        reasons.append(f"Shots surge: +{shots_surge:.1f}")

    teammates_out = len(candidate.teammates_unavailable)
    teammates_shock = teammates_out >= config.teammates_out_shock
    if teammates_shock:
        reasons.append(f"{teammates_out} teammates out")

    role_shock = bool(candidate.is_newly_starting)
    if role_shock:
        reasons.append("Newly inserted into starting role")

    if not reasons:
        return ShockInfo(teammates_out_count=teammates_out)

    hit_rate, margin = recent_form(
        candidate.values, candidate.line, side, config.shock_validation_window
    )
    passed = (
        hit_rate >= config.shock_validation_hit_rate
        and margin >= config.shock_validation_margin
    )
    logger.debug(
        "Shock on %s (%s): last-%d hit rate %.2f, margin %.2f → %s",
        candidate.candidate_id,
        ", ".join(reasons),
        config.shock_validation_window,
        hit_rate,
        margin,
        "validated" if passed else "failed",
    )

    return ShockInfo(
        minutes_shock=minutes_shock,
        usage_shock=usage_shock,
        shots_shock=shots_shock,
        teammates_shock=teammates_shock,
        role_shock=role_shock,
        passed_validation=passed,
        teammates_out_count=teammates_out,
        reasons=tuple(reasons),
    )
