"""
Eligibility pipeline: the six gates between a raw candidate and the scorer.

Gates run in a strict, short-circuiting order.  Each one either records a
passed :class:`CheckOutcome` and proceeds, or records a failed outcome and
blocks with a named :class:`BlockReason`:

    1. Side & edge        SideSelector found no side     → "No Clear Edge"
    2. Minutes floor      median / minimum minutes low   → "Low Minutes"
    3. Matchup            edge after opponent tier low   → "Bad Matchup"
    4. Location split     home-only / away-only edge low → "Weak Split Edge"
    5. Price movement     non-blocking juice bonus
    6. Shock detection    shocked and failed validation  → "Shock Validation Failed"

Blocks are values, never exceptions.  The pipeline never sees a candidate
with fewer than ``min_observations`` games; the engine skips those first.
"""

import logging
from typing import Optional, Sequence

from medianlock.core import stats
from medianlock.core.config import EngineConfig
from medianlock.core.contracts import (
    BlockReason,
    Candidate,
    Check,
    Location,
    PipelineRecord,
    Side,
)
from medianlock.core.odds_math import juice_movement
from medianlock.services.shock import detect_shock, recent_form
from medianlock.services.side_selector import select_side

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Gate helpers
# ---------------------------------------------------------------------------

def matchup_adjustment(rank: Optional[int], config: EngineConfig) -> float:
    """
    Edge adjustment for the opponent's strength tier.

    Ranks ``1..elite_rank_max`` (strongest opponents) cost edge, ranks above
    ``average_rank_max`` add edge.  A missing or non-positive rank is treated
    as average.
    """
    if rank is None or rank < 1:
        return 0.0
    if rank <= config.elite_rank_max:
        return config.elite_adjustment
    if rank <= config.average_rank_max:
        return 0.0
    return config.weak_adjustment


def split_median(
    values: Sequence[float],
    flags: Sequence[Location],
    location: Location,
) -> float:
    """Median of the games played at ``location``.

    Falls back to the full-series median when no game matches.
    """
    matching = [v for v, flag in zip(values, flags) if flag == location]
    if not matching:
        return stats.median(values)
    return stats.median(matching)


def oriented_edge(center: float, line: float, side: Side) -> float:
    if side == Side.UNDER:
        return line - center
    return center - line


def price_movement_bonus(opening: float, current: float, config: EngineConfig) -> float:
    """Juice bonus when the price moved toward more juice by the threshold."""
    if juice_movement(opening, current) >= config.juice_move_threshold:
        return config.juice_bonus
    return 0.0


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class EligibilityPipeline:
    """
    Runs the six gates for one candidate at a time.

    The pipeline holds only its injected :class:`EngineConfig`; it keeps no
    state between candidates, so one instance can be shared by callers that
    map over a slate in parallel.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.default()

    def run(self, candidate: Candidate) -> PipelineRecord:
        cfg = self.config
        line = candidate.line
        record = PipelineRecord(
            candidate=candidate,
            median_value=stats.median(candidate.values),
            median_minutes=stats.median(candidate.minutes),
            median_usage=stats.median(candidate.usage) if candidate.usage else cfg.default_usage,
            median_shots=(
                stats.median(candidate.shot_attempts)
                if candidate.shot_attempts
                else cfg.default_shot_attempts
            ),
        )

        # === GATE 1: Side & edge ===
        selection = select_side(candidate.values, line, cfg)
        record.side = selection.side
        record.raw_edge = selection.edge
        record.adjusted_edge = selection.edge
        record.hit_rate = selection.hit_rate

        if selection.side == Side.NONE:
            detail = f"No side: best edge {selection.edge:.1f} ({'; '.join(selection.rejections)})"
            logger.debug("%s blocked at side selection: %s", candidate.candidate_id, detail)
            return record.failed(Check.SIDE_EDGE, detail, BlockReason.NO_CLEAR_EDGE)

        record.hit_rate_last5, _ = recent_form(
            candidate.values, line, selection.side, cfg.shock_validation_window
        )
        record.passed(
            Check.SIDE_EDGE,
            f"{selection.side.value} edge {selection.edge:.1f} ≥ {cfg.edge_min}, "
            f"hit rate {selection.hit_rate:.0%} ≥ {cfg.hit_rate_min:.0%}",
        )

        # === GATE 2: Minutes floor ===
        min_minutes = stats.minimum(candidate.minutes)
        if record.median_minutes < cfg.minutes_floor or min_minutes < cfg.minutes_min:
            detail = (
                f"Minutes floor: median {record.median_minutes:.0f} "
                f"(need {cfg.minutes_floor:.0f}), min {min_minutes:.0f} "
                f"(need {cfg.minutes_min:.0f})"
            )
            return record.failed(Check.MINUTES_FLOOR, detail, BlockReason.LOW_MINUTES)
        record.passed(
            Check.MINUTES_FLOOR,
            f"Minutes floor: median {record.median_minutes:.0f} ≥ {cfg.minutes_floor:.0f}",
        )

        # === GATE 3: Matchup adjustment ===
        rank = candidate.opponent_strength_rank
        record.matchup_adjustment = matchup_adjustment(rank, cfg)
        record.adjusted_edge = record.raw_edge + record.matchup_adjustment
        if record.adjusted_edge < cfg.adjusted_edge_min:
            detail = (
                f"Adjusted edge {record.adjusted_edge:.1f} < {cfg.adjusted_edge_min} "
                f"(opponent rank {rank})"
            )
            return record.failed(Check.MATCHUP, detail, BlockReason.BAD_MATCHUP)
        record.passed(
            Check.MATCHUP,
            f"Matchup adjustment {record.matchup_adjustment:+.1f} (opponent rank {rank})",
        )

        # === GATE 4: Location split ===
        center = split_median(candidate.values, candidate.location_flags, candidate.location)
        record.split_edge = oriented_edge(center, line, record.side)
        location = candidate.location.value
        if record.split_edge < cfg.split_edge_min:
            detail = f"{location} split edge {record.split_edge:.1f} < {cfg.split_edge_min}"
            return record.failed(Check.LOCATION_SPLIT, detail, BlockReason.WEAK_SPLIT_EDGE)
        record.passed(
            Check.LOCATION_SPLIT,
            f"{location} split edge {record.split_edge:.1f} ≥ {cfg.split_edge_min}",
        )

        # === GATE 5: Price movement (non-blocking) ===
        record.juice_bonus = price_movement_bonus(
            candidate.opening_price, candidate.current_price, cfg
        )
        if record.juice_bonus > 0:
            record.passed(
                Check.PRICE_MOVEMENT,
                f"Juice bonus +{record.juice_bonus} "
                f"(price {candidate.opening_price:+.0f} → {candidate.current_price:+.0f})",
            )

        # === GATE 6: Shock detection ===
        record.shock = detect_shock(candidate, record.side, cfg)
        if record.shock.is_shocked:
            reasons = ", ".join(record.shock.reasons)
            if not record.shock.passed_validation:
                detail = f"Shock flag: {reasons} - failed validation"
                return record.failed(Check.SHOCK, detail, BlockReason.SHOCK_VALIDATION_FAILED)
            record.passed(Check.SHOCK, f"Shock flag: {reasons} - passed validation")

        return record
