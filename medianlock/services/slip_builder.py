"""
Slip builder for the MedianLock engine.

Assembles 2-leg and 3-leg slips from the day's LOCK / STRONG candidates
under hard conflict constraints, then ranks them by a combined score.

Pool size assumption
--------------------
Enumeration is exhaustive: C(n, 3) subsets for a pool of n.  The pool is
small after the eligibility gates (empirically under a few dozen), so this
is cheap.  Ranking streams through a bounded top-N selection, so memory
stays O(max_slips) however many subsets survive.  A pool larger than
``max_exhaustive_pool`` is logged as a warning: that is the point at which a
pruned search should replace enumeration.
"""

import heapq
import itertools
import logging
from collections import Counter
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from medianlock.core import stats
from medianlock.core.config import SUPPORTED_SLIP_SIZES, EngineConfig
from medianlock.core.contracts import EvaluationResult, Slip, StakeTier, Status

logger = logging.getLogger(__name__)


def eligible_pool(
    results: Iterable[EvaluationResult],
    config: EngineConfig,
) -> List[EvaluationResult]:
    """
    Filter results down to slip-eligible legs, preserving input order.

    LOCKs always qualify.  A STRONG qualifies unless it is shock-flagged
    with a last-5 hit rate below ``strong_shock_hit_rate_min``.
    """
    pool = []
    for r in results:
        if r.status == Status.LOCK:
            pool.append(r)
        elif r.status == Status.STRONG and (
            not r.is_shock_flagged or r.hit_rate_last5 >= config.strong_shock_hit_rate_min
        ):
            pool.append(r)
    return pool


def _has_conflict(combo: Sequence[EvaluationResult], config: EngineConfig) -> bool:
    """True if two legs share a subject or too many legs share an event."""
    subjects = [leg.subject_id for leg in combo]
    if len(subjects) != len(set(subjects)):
        return True
    events = Counter(leg.event_id for leg in combo)
    return max(events.values()) > config.max_same_event


def stake_tier(probability: float, config: EngineConfig) -> StakeTier:
    if probability >= config.tier_a_min:
        return StakeTier.A
    if probability >= config.tier_b_min:
        return StakeTier.B
    return StakeTier.C


def _slip_metrics(
    combo: Sequence[EvaluationResult],
    config: EngineConfig,
) -> Tuple[float, float]:
    """
    Score and probability for one combination.

    Returns:
        ``(slip_score, probability)`` where::

            slip_score  = Σ confidence + 3 * avg(juice_bonus) - 2 * #STRONG
            probability = Π clamp(hit_rate, 0.55, 0.95) - 0.03 if events repeat
    """
    strong_count = sum(1 for leg in combo if leg.status == Status.STRONG)
    slip_score = (
        sum(leg.confidence_score for leg in combo)
        + config.slip_juice_weight * stats.mean([leg.juice_bonus for leg in combo])
        - config.strong_leg_penalty * strong_count
    )

    # Clamp each leg so one extreme hit rate cannot dominate the product
    probability = 1.0
    for leg in combo:
        probability *= min(config.prob_clamp_max, max(config.prob_clamp_min, leg.hit_rate))

    events = [leg.event_id for leg in combo]
    if len(set(events)) < len(events):
        probability -= config.same_event_penalty

    return slip_score, probability


def _iter_slips(
    pool: Sequence[EvaluationResult],
    num_legs: int,
    config: EngineConfig,
) -> Iterator[Slip]:
    for combo in itertools.combinations(pool, num_legs):
        if _has_conflict(combo, config):
            continue
        slip_score, probability = _slip_metrics(combo, config)
        yield Slip(
            leg_ids=tuple(leg.candidate_id for leg in combo),
            slip_score=slip_score,
            probability=probability,
            stake_tier=stake_tier(probability, config),
        )


def build_slips(
    results: Iterable[EvaluationResult],
    num_legs: int,
    config: Optional[EngineConfig] = None,
    max_slips: Optional[int] = None,
) -> List[Slip]:
    """
    Build and rank slips of exactly ``num_legs`` legs.

    Args:
        results: Evaluation results for the slate.  Non-eligible results are
            filtered out here, so the full slate can be passed.
        num_legs: 2 or 3.
        config: Thresholds; defaults to :meth:`EngineConfig.default`.
        max_slips: Number of slips to return (default ``config.max_slips``).

    Returns:
        Up to ``max_slips`` slips sorted by ``slip_score`` descending.  Ties
        keep enumeration order, which follows the input order of
        ``results``, so identical input always yields identical output.
        An empty list when the pool is smaller than ``num_legs``.

    Raises:
        ValueError: If ``num_legs`` is not a supported slip size.
    """
    if num_legs not in SUPPORTED_SLIP_SIZES:
        raise ValueError(
            f"num_legs={num_legs!r} unsupported; expected one of {SUPPORTED_SLIP_SIZES}."
        )
    config = config or EngineConfig.default()
    limit = config.max_slips if max_slips is None else max_slips

    pool = eligible_pool(results, config)
    if len(pool) < num_legs:
        logger.info("Not enough eligible legs for %d-leg slips (have %d)", num_legs, len(pool))
        return []
    if len(pool) > config.max_exhaustive_pool:
        logger.warning(
            "Slip pool of %d exceeds exhaustive limit %d; enumeration is C(%d, %d)",
            len(pool), config.max_exhaustive_pool, len(pool), num_legs,
        )

    slips = heapq.nlargest(limit, _iter_slips(pool, num_legs, config), key=lambda s: s.slip_score)

    logger.info(
        "Built %d-leg slips from pool of %d, returning %d (best score: %.2f)",
        num_legs, len(pool), len(slips), slips[0].slip_score if slips else 0.0,
    )
    return slips


def build_slate_slips(
    results: Sequence[EvaluationResult],
    config: Optional[EngineConfig] = None,
) -> Dict[int, List[Slip]]:
    """Build every supported slip size for a slate, keyed by leg count."""
    config = config or EngineConfig.default()
    return {k: build_slips(results, k, config) for k in SUPPORTED_SLIP_SIZES}
