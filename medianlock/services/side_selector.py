"""
Side selection: pick OVER, UNDER or no side for one candidate.

A naive median-versus-line comparison admits too many low-conviction,
high-variance picks.  Each direction therefore has to clear two layers:

    Base filter (both sides)
        edge >= edge_min  and  hit_rate >= hit_rate_min

    OVER secondary filter
        variance <= over_variance_max
        >= recent_hits_required of the last recent_window games cleared
        edge >= over_edge_buffer

    UNDER secondary filter (tighter variance cap)
        variance <= under_variance_max
        median >= under_median_floor_ratio * line
        >= recent_hits_required of the last recent_window games cleared

OVER is tried first; any failure falls through to UNDER.  When neither
clears, the side is NONE and the larger raw edge is reported for
diagnostics.

Pure function of ``(values, line, config)``.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from medianlock.core import stats
from medianlock.core.config import EngineConfig
from medianlock.core.contracts import Side


@dataclass(frozen=True)
class SideSelection:
    """Chosen side plus the per-direction numbers behind the decision."""

    side: Side
    edge: float
    hit_rate: float

    median: float
    variance: float
    over_edge: float
    under_edge: float
    over_hit_rate: float
    under_hit_rate: float
    rejections: Tuple[str, ...] = ()


def _over_rejections(
    values: Sequence[float],
    line: float,
    median: float,
    variance: float,
    config: EngineConfig,
) -> List[str]:
    edge = median - line
    hit_rate = stats.hit_rate_over(values, line)
    recent_hits = stats.count_over(stats.recent(values, config.recent_window), line)

    reasons = []
    if edge < config.edge_min:
        reasons.append(f"OVER edge {edge:.2f} < {config.edge_min}")
    if hit_rate < config.hit_rate_min:
        reasons.append(f"OVER hit rate {hit_rate:.0%} < {config.hit_rate_min:.0%}")
    if variance > config.over_variance_max:
        reasons.append(f"OVER variance {variance:.2f} > {config.over_variance_max}")
    if recent_hits < config.recent_hits_required:
        reasons.append(
            f"OVER recent form {recent_hits}/{config.recent_window} "
            f"< {config.recent_hits_required}"
        )
    if edge < config.over_edge_buffer:
        reasons.append(f"OVER edge {edge:.2f} < buffer {config.over_edge_buffer}")
    return reasons


def _under_rejections(
    values: Sequence[float],
    line: float,
    median: float,
    variance: float,
    config: EngineConfig,
) -> List[str]:
    edge = line - median
    hit_rate = stats.hit_rate_under(values, line)
    recent_hits = stats.count_under(stats.recent(values, config.recent_window), line)

    reasons = []
    if edge < config.edge_min:
        reasons.append(f"UNDER edge {edge:.2f} < {config.edge_min}")
    if hit_rate < config.hit_rate_min:
        reasons.append(f"UNDER hit rate {hit_rate:.0%} < {config.hit_rate_min:.0%}")
    if variance > config.under_variance_max:
        reasons.append(f"UNDER variance {variance:.2f} > {config.under_variance_max}")
    floor = config.under_median_floor_ratio * line
    if median < floor:
        reasons.append(f"UNDER median {median:.2f} < floor {floor:.2f}")
    if recent_hits < config.recent_hits_required:
        reasons.append(
            f"UNDER recent form {recent_hits}/{config.recent_window} "
            f"< {config.recent_hits_required}"
        )
    return reasons


def select_side(
    values: Sequence[float],
    line: float,
    config: EngineConfig,
) -> SideSelection:
    """
    Choose a betting direction for a historical series against a line.

    Args:
        values: Historical stat values, most recent first.
        line: The proposition's line.
        config: Thresholds; see :class:`EngineConfig`.

    Returns:
        :class:`SideSelection`.  ``edge`` and ``hit_rate`` are oriented to the
        chosen side, or to the larger-edge direction when ``side`` is NONE.
    """
    median = stats.median(values)
    variance = stats.variance(values)

    over_edge = median - line
    under_edge = line - median
    over_hit = stats.hit_rate_over(values, line)
    under_hit = stats.hit_rate_under(values, line)

    numbers = dict(
        median=median,
        variance=variance,
        over_edge=over_edge,
        under_edge=under_edge,
        over_hit_rate=over_hit,
        under_hit_rate=under_hit,
    )

    over_reasons = _over_rejections(values, line, median, variance, config)
    if not over_reasons:
        return SideSelection(side=Side.OVER, edge=over_edge, hit_rate=over_hit, **numbers)

    under_reasons = _under_rejections(values, line, median, variance, config)
    if not under_reasons:
        return SideSelection(
            side=Side.UNDER,
            edge=under_edge,
            hit_rate=under_hit,
            rejections=tuple(over_reasons),
            **numbers,
        )

    if over_edge >= under_edge:
        edge, hit_rate = over_edge, over_hit
    else:
        edge, hit_rate = under_edge, under_hit
    return SideSelection(
        side=Side.NONE,
        edge=edge,
        hit_rate=hit_rate,
        rejections=tuple(over_reasons + under_reasons),
        **numbers,
    )
