"""
Backtest analytics over settled MedianLock output.

Settlement itself (grading each candidate and slip against the box score)
happens upstream; every function here receives already-settled records and
returns plain values, so it can be called from a report job or a notebook
without importing any storage code.

Two entry points:

    summarize_backtest   hit rates by class, slip win rates, block-reason
                         counts, bucketed hit rates and a significance test
    sweep_thresholds     grid search over (edge, hit rate, minutes floor)
                         for the cell with the best realised hit rate
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from scipy.stats import binomtest

from medianlock.core import stats
from medianlock.core.contracts import EvaluationResult, Location, Status
from medianlock.core.odds_math import STANDARD_PRICE, implied_prob

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tuning constants
# ---------------------------------------------------------------------------

# Threshold grid for the sweep
EDGE_GRID: Tuple[float, ...] = (1.0, 1.5, 2.0, 2.5)
HIT_RATE_GRID: Tuple[float, ...] = (0.70, 0.75, 0.80, 0.85)
MINUTES_GRID: Tuple[float, ...] = (26.0, 28.0, 30.0)

# Passing candidates required before the sweep runs at all
MIN_SWEEP_SAMPLE = 20

# Candidates a grid cell must retain to be considered
MIN_CELL_SAMPLE = 10

# Returned when the sample is too small to tune
DEFAULT_TUNED = (1.5, 0.80, 28.0)

_TOP_REASONS = 5


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SettledCandidate:
    """An evaluation result plus its graded outcome."""

    result: EvaluationResult
    hit: bool
    slate_date: str
    location: Location = Location.HOME
    opponent_strength_rank: Optional[int] = None


@dataclass(frozen=True)
class SettledSlip:
    size: int
    won: bool
    slate_date: str


@dataclass(frozen=True)
class BucketStat:
    bucket: str
    hit_rate: float
    count: int


@dataclass(frozen=True)
class TunedThresholds:
    edge_min: float
    hit_rate_min: float
    minutes_floor: float
    hit_rate: float = 0.0
    sample: int = 0


@dataclass
class BacktestSummary:
    slates_analyzed: int = 0
    lock_count: int = 0
    strong_count: int = 0
    block_count: int = 0
    lock_only_hit_rate: float = 0.0
    lock_strong_hit_rate: float = 0.0
    slip_counts: Dict[int, int] = field(default_factory=dict)
    slip_hit_rates: Dict[int, float] = field(default_factory=dict)
    top_fail_reasons: List[Tuple[str, int]] = field(default_factory=list)
    avg_edge: float = 0.0
    avg_minutes: float = 0.0
    avg_confidence_score: float = 0.0
    juice_bonus_win_rate: float = 0.0
    shock_flag_rate: float = 0.0
    shock_pass_rate: float = 0.0
    defense_buckets: List[BucketStat] = field(default_factory=list)
    minutes_buckets: List[BucketStat] = field(default_factory=list)
    location_buckets: List[BucketStat] = field(default_factory=list)
    breakeven_rate: float = 0.0
    p_value: Optional[float] = None


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _win_rate(wins: int, total: int) -> float:
    return wins / total if total > 0 else 0.0


def _defense_bucket(rank: Optional[int]) -> str:
    rank = rank if rank is not None and rank >= 1 else 15
    if rank <= 10:
        return "elite (1-10)"
    if rank <= 20:
        return "average (11-20)"
    return "weak (21+)"


def _minutes_bucket(minutes: float) -> str:
    if minutes >= 33:
        return "33+"
    if minutes >= 30:
        return "30-33"
    return "<30"


def _bucket_stats(
    settled: Sequence[SettledCandidate],
    labels: Sequence[str],
    bucket_of,
) -> List[BucketStat]:
    """Hit rate per bucket, in ``labels`` order, empty buckets dropped."""
    totals: Dict[str, List[int]] = {label: [0, 0] for label in labels}
    for s in settled:
        tally = totals[bucket_of(s)]
        tally[1] += 1
        if s.hit:
            tally[0] += 1
    return [
        BucketStat(label, _win_rate(hits, total), total)
        for label, (hits, total) in totals.items()
        if total > 0
    ]


# ---------------------------------------------------------------------------
# summarize_backtest
# ---------------------------------------------------------------------------

def summarize_backtest(
    candidates: Iterable[SettledCandidate],
    slips: Iterable[SettledSlip] = (),
    breakeven_price: int = STANDARD_PRICE,
) -> BacktestSummary:
    """
    Summarise settled candidates and slips.

    Includes:
      - LOCK-only and LOCK+STRONG hit rates, counts per class
      - slip win rate and count per leg count
      - the five most common block reasons
      - averages of edge, minutes and confidence over passing candidates
      - juice-bonus win rate, shock flag rate and shock pass rate
      - hit rate by defence tier, minutes bucket and location
      - one-sided binomial p-value of the LOCK+STRONG hit rate against the
        break-even rate at ``breakeven_price``
    """
    candidates = list(candidates)
    slips = list(slips)
    breakeven = implied_prob(breakeven_price)

    if not candidates:
        logger.info("No settled candidates to backtest")
        return BacktestSummary(breakeven_rate=breakeven)

    locks = [c for c in candidates if c.result.status == Status.LOCK]
    strongs = [c for c in candidates if c.result.status == Status.STRONG]
    blocks = [c for c in candidates if c.result.status == Status.BLOCK]
    passing = locks + strongs

    lock_hits = sum(1 for c in locks if c.hit)
    passing_hits = sum(1 for c in passing if c.hit)

    # --- Slips by size ---
    slip_counts: Dict[int, int] = {}
    slip_wins: Dict[int, int] = {}
    for s in slips:
        slip_counts[s.size] = slip_counts.get(s.size, 0) + 1
        slip_wins[s.size] = slip_wins.get(s.size, 0) + (1 if s.won else 0)
    slip_hit_rates = {size: _win_rate(slip_wins[size], n) for size, n in slip_counts.items()}

    # --- Block reasons ---
    reasons = Counter(
        c.result.block_reason.value if c.result.block_reason else "Unknown" for c in blocks
    )
    top_fail_reasons = sorted(reasons.items(), key=lambda kv: (-kv[1], kv[0]))[:_TOP_REASONS]

    # --- Juice and shock ---
    juiced = [c for c in passing if c.result.juice_bonus > 0]
    shocked = [c for c in passing if c.result.is_shock_flagged]
    shock_passed = [c for c in shocked if c.result.shock.passed_validation]

    p_value = None
    if passing:
        p_value = float(
            binomtest(passing_hits, len(passing), breakeven, alternative="greater").pvalue
        )

    summary = BacktestSummary(
        slates_analyzed=len({c.slate_date for c in candidates}),
        lock_count=len(locks),
        strong_count=len(strongs),
        block_count=len(blocks),
        lock_only_hit_rate=_win_rate(lock_hits, len(locks)),
        lock_strong_hit_rate=_win_rate(passing_hits, len(passing)),
        slip_counts=slip_counts,
        slip_hit_rates=slip_hit_rates,
        top_fail_reasons=top_fail_reasons,
        avg_edge=stats.mean([c.result.adjusted_edge for c in passing]),
        avg_minutes=stats.mean([c.result.median_minutes for c in passing]),
        avg_confidence_score=stats.mean([c.result.confidence_score for c in passing]),
        juice_bonus_win_rate=_win_rate(sum(1 for c in juiced if c.hit), len(juiced)),
        shock_flag_rate=_win_rate(len(shocked), len(passing)),
        shock_pass_rate=_win_rate(len(shock_passed), len(shocked)),
        defense_buckets=_bucket_stats(
            passing,
            ("elite (1-10)", "average (11-20)", "weak (21+)"),
            lambda c: _defense_bucket(c.opponent_strength_rank),
        ),
        minutes_buckets=_bucket_stats(
            passing,
            ("<30", "30-33", "33+"),
            lambda c: _minutes_bucket(c.result.median_minutes),
        ),
        location_buckets=_bucket_stats(
            passing,
            (Location.HOME.value, Location.AWAY.value),
            lambda c: c.location.value,
        ),
        breakeven_rate=breakeven,
        p_value=p_value,
    )

    logger.info(
        "Backtest over %d slates: %d LOCK (%.1f%%), %d STRONG, LOCK+STRONG %.1f%%",
        summary.slates_analyzed,
        summary.lock_count,
        summary.lock_only_hit_rate * 100,
        summary.strong_count,
        summary.lock_strong_hit_rate * 100,
    )
    return summary


# ---------------------------------------------------------------------------
# sweep_thresholds
# ---------------------------------------------------------------------------

def sweep_thresholds(
    candidates: Iterable[SettledCandidate],
    edge_grid: Sequence[float] = EDGE_GRID,
    hit_rate_grid: Sequence[float] = HIT_RATE_GRID,
    minutes_grid: Sequence[float] = MINUTES_GRID,
) -> TunedThresholds:
    """
    Find the threshold cell with the best realised hit rate.

    Only LOCK / STRONG candidates are considered.  A cell keeps candidates
    with ``adjusted_edge >= edge``, ``hit_rate >= hr`` and
    ``median_minutes >= minutes``; cells keeping fewer than
    ``MIN_CELL_SAMPLE`` are ignored.  The first cell in grid order wins ties.

    Returns the defaults when fewer than ``MIN_SWEEP_SAMPLE`` passing
    candidates are available.  Feed the result to
    :meth:`EngineConfig.with_tuned_thresholds`.
    """
    passing = [c for c in candidates if c.result.is_passing]
    if len(passing) < MIN_SWEEP_SAMPLE:
        logger.info(
            "Threshold sweep needs %d passing candidates (have %d), keeping defaults",
            MIN_SWEEP_SAMPLE, len(passing),
        )
        edge, hr, minutes = DEFAULT_TUNED
        return TunedThresholds(edge, hr, minutes)

    best: Optional[TunedThresholds] = None
    for edge in edge_grid:
        for hr in hit_rate_grid:
            for minutes in minutes_grid:
                kept = [
                    c for c in passing
                    if c.result.adjusted_edge >= edge
                    and c.result.hit_rate >= hr
                    and c.result.median_minutes >= minutes
                ]
                if len(kept) < MIN_CELL_SAMPLE:
                    continue
                rate = _win_rate(sum(1 for c in kept if c.hit), len(kept))
                if best is None or rate > best.hit_rate:
                    best = TunedThresholds(edge, hr, minutes, rate, len(kept))

    if best is None:
        edge, hr, minutes = DEFAULT_TUNED
        return TunedThresholds(edge, hr, minutes)

    logger.info(
        "Tuned thresholds: edge=%.1f, hit_rate=%.2f, minutes=%.0f (%.1f%% over %d)",
        best.edge_min, best.hit_rate_min, best.minutes_floor, best.hit_rate * 100, best.sample,
    )
    return best
