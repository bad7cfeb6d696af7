"""Engine configuration: every threshold and constant in one place.

This module is the **registry** for every number the eligibility pipeline,
the confidence scorer and the slip builder compare against.  Nowhere else in
the codebase should an edge minimum, a shock delta or a stake-tier boundary
be hard-coded.

Architecture
------------
:class:`EngineConfig` is a frozen dataclass.  An instance is passed *by value*
into every component call; no component reads module-level state.  Named
constructors return pre-populated instances:

* :meth:`EngineConfig.default`: the production defaults.
* :meth:`EngineConfig.from_env`: defaults overridden by ``MEDIANLOCK_*``
  environment variables (loaded through ``python-dotenv``).

Typical usage::

    from medianlock.core.config import EngineConfig

    cfg = EngineConfig.default()
    engine = MedianLockEngine(config=cfg)

    # Override a single threshold for an A/B run:
    strict = cfg.with_overrides(hit_rate_min=0.80)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Final, Mapping, Optional

from dotenv import load_dotenv

#: Prefix for environment-variable overrides read by :meth:`EngineConfig.from_env`.
ENV_PREFIX: Final[str] = "MEDIANLOCK_"

#: Slip sizes the builder supports.  Larger slips can push the clamped
#: probability product below the same-event haircut.
SUPPORTED_SLIP_SIZES: Final[tuple[int, ...]] = (2, 3)


@dataclass(frozen=True)
class EngineConfig:
    """Immutable threshold bundle for one evaluation run.

    Every field has a production default so a bare ``EngineConfig()`` is
    always usable.  Override via :meth:`with_overrides` (a thin wrapper over
    :func:`dataclasses.replace`) for tuning or tests.

    Attributes:
        --- Primary gates ---
        edge_min: Minimum median-minus-line edge for either direction.
        hit_rate_min: Minimum fraction of historical games on the bet side.
        minutes_floor: Minimum *median* minutes across the series.
        minutes_min: Minimum *single-game* minutes across the series.
        split_edge_min: Minimum edge using home-only or away-only games.
        adjusted_edge_min: Minimum edge after the matchup adjustment.
        min_observations: Series shorter than this are skipped, not graded.

        --- Side selection ---
        over_variance_max: Population-variance cap for an OVER.
        under_variance_max: Population-variance cap for an UNDER.  Tighter
            than the OVER cap: unders on volatile series lose to one spike.
        over_edge_buffer: OVER edge must also clear this, even when
            ``edge_min`` is lower.
        under_median_floor_ratio: UNDER requires ``median >= ratio * line``.
            A median far under the line is usually a blowout/injury artifact.
        recent_window: Number of most-recent games checked for form.
        recent_hits_required: Games in ``recent_window`` that must clear.

        --- Matchup adjustment ---
        elite_rank_max: Opponent ranks ``1..elite_rank_max`` are elite.
        average_rank_max: Ranks up to this are average; above are weak.
        elite_adjustment: Edge adjustment against an elite opponent.
        weak_adjustment: Edge adjustment against a weak opponent.

        --- Price movement ---
        juice_move_threshold: Cents the price must move toward more juice.
        juice_bonus: Bonus recorded when the threshold is met.

        --- Shock detection ---
        shock_window: Most-recent games averaged against the series median.
        minutes_shock_delta: Minutes surge that flags a shock.
        usage_shock_delta: Usage-rate surge (percentage points).
        shots_shock_delta: Shot-attempt surge.
        teammates_out_shock: Unavailable teammates that flag a shock.
        shock_validation_window: Games used to validate a shocked candidate.
        shock_validation_hit_rate: Hit rate required in that window.
        shock_validation_margin: Median margin over the line required.
        default_usage: Baseline usage when the series is missing.
        default_shot_attempts: Baseline shot attempts when missing.

        --- Confidence score ---
        edge_weight, hit_rate_weight, minutes_weight, consistency_weight,
        juice_weight: Composite-score weights.
        minutes_baseline: Minutes normaliser (``median_minutes / baseline``).
        consistency_cap: Cap on ``median / stddev`` before weighting.
        shock_penalty: Points removed from a shocked candidate.
        lock_threshold: Score at or above which a candidate is a LOCK.
        strong_threshold: Score at or above which a candidate is STRONG.

        --- Slip builder ---
        max_same_event: Maximum legs sharing one event id.
        strong_shock_hit_rate_min: A shocked STRONG enters the pool only with
            a last-5 hit rate at or above this.
        slip_juice_weight: Weight on the average leg juice bonus.
        strong_leg_penalty: Points removed per STRONG leg.
        prob_clamp_min, prob_clamp_max: Per-leg hit-rate clamp.
        same_event_penalty: Probability haircut for correlated legs.
        tier_a_min, tier_b_min: Stake-tier probability boundaries.
        max_slips: Slips returned per size.
        max_exhaustive_pool: Pool size above which enumeration logs a warning.
    """

    # Primary gates
    edge_min: float = 1.0
    hit_rate_min: float = 0.70
    minutes_floor: float = 24.0
    minutes_min: float = 18.0
    split_edge_min: float = 0.5
    adjusted_edge_min: float = 0.5
    min_observations: int = 5

    # Side selection
    over_variance_max: float = 36.0
    under_variance_max: float = 25.0
    over_edge_buffer: float = 1.5
    under_median_floor_ratio: float = 0.6
    recent_window: int = 3
    recent_hits_required: int = 2

    # Matchup adjustment
    elite_rank_max: int = 10
    average_rank_max: int = 20
    elite_adjustment: float = -1.5
    weak_adjustment: float = 1.5

    # Price movement
    juice_move_threshold: float = 15.0
    juice_bonus: float = 1.5

    # Shock detection
    shock_window: int = 3
    minutes_shock_delta: float = 4.0
    usage_shock_delta: float = 3.5
    shots_shock_delta: float = 2.5
    teammates_out_shock: int = 2
    shock_validation_window: int = 5
    shock_validation_hit_rate: float = 0.6
    shock_validation_margin: float = 0.5
    default_usage: float = 25.0
    default_shot_attempts: float = 10.0

    # Confidence score
    edge_weight: float = 3.5
    hit_rate_weight: float = 40.0
    minutes_weight: float = 10.0
    minutes_baseline: float = 30.0
    consistency_cap: float = 5.0
    consistency_weight: float = 8.0
    juice_weight: float = 5.0
    shock_penalty: float = 6.0
    lock_threshold: float = 85.0
    strong_threshold: float = 75.0

    # Slip builder
    max_same_event: int = 2
    strong_shock_hit_rate_min: float = 0.8
    slip_juice_weight: float = 3.0
    strong_leg_penalty: float = 2.0
    prob_clamp_min: float = 0.55
    prob_clamp_max: float = 0.95
    same_event_penalty: float = 0.03
    tier_a_min: float = 0.62
    tier_b_min: float = 0.55
    max_slips: int = 10
    max_exhaustive_pool: int = 40

    def __post_init__(self) -> None:
        if self.min_observations < 1:
            raise ValueError(
                f"min_observations={self.min_observations!r} must be ≥ 1."
            )
        if self.strong_threshold > self.lock_threshold:
            raise ValueError(
                f"strong_threshold={self.strong_threshold!r} exceeds "
                f"lock_threshold={self.lock_threshold!r}; STRONG would be unreachable."
            )
        if not 0.0 < self.prob_clamp_min <= self.prob_clamp_max < 1.0:
            raise ValueError(
                f"Probability clamp [{self.prob_clamp_min!r}, {self.prob_clamp_max!r}] "
                "must satisfy 0 < min ≤ max < 1."
            )
        floor = self.prob_clamp_min ** max(SUPPORTED_SLIP_SIZES)
        if not 0.0 <= self.same_event_penalty < floor:
            raise ValueError(
                f"same_event_penalty={self.same_event_penalty!r} must lie in [0, {floor:.4f}); "
                "a larger haircut can push slip probability to zero or below."
            )
        if self.tier_b_min > self.tier_a_min:
            raise ValueError(
                f"tier_b_min={self.tier_b_min!r} exceeds tier_a_min={self.tier_a_min!r}."
            )
        if self.elite_rank_max > self.average_rank_max:
            raise ValueError(
                f"elite_rank_max={self.elite_rank_max!r} exceeds "
                f"average_rank_max={self.average_rank_max!r}."
            )
        if not 1 <= self.recent_hits_required <= self.recent_window:
            raise ValueError(
                f"recent_hits_required={self.recent_hits_required!r} must lie in "
                f"[1, recent_window={self.recent_window!r}]."
            )
        if self.max_same_event < 1:
            raise ValueError(f"max_same_event={self.max_same_event!r} must be ≥ 1.")
        if self.minutes_baseline <= 0:
            raise ValueError(f"minutes_baseline={self.minutes_baseline!r} must be > 0.")

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def default(cls) -> EngineConfig:
        """Return the production configuration."""
        return cls()

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        dotenv: bool = True,
    ) -> EngineConfig:
        """Build a config from ``MEDIANLOCK_<FIELD>`` environment variables.

        Only fields with a matching variable are overridden; everything else
        keeps its default.  ``MEDIANLOCK_EDGE_MIN=1.5`` sets ``edge_min``.

        Args:
            environ: Mapping to read instead of ``os.environ`` (tests).
            dotenv: Load a ``.env`` file first.  Ignored when ``environ``
                is given.

        Raises:
            ValueError: If a variable cannot be parsed as the field's type.
        """
        if environ is None:
            if dotenv:
                load_dotenv()
            environ = os.environ

        overrides = {}
        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            cast = int if f.type in (int, "int") else float
            try:
                overrides[f.name] = cast(raw)
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_PREFIX}{f.name.upper()}={raw!r} is not a valid {cast.__name__}."
                ) from exc
        return cls(**overrides)

    # ------------------------------------------------------------------ #
    #  Derived copies                                                      #
    # ------------------------------------------------------------------ #

    def with_overrides(self, **overrides: float) -> EngineConfig:
        """Return a copy with the given fields replaced.

        Raises:
            TypeError: If a key is not a config field.
        """
        return replace(self, **overrides)

    def with_tuned_thresholds(
        self,
        edge_min: float,
        hit_rate_min: float,
        minutes_floor: float,
    ) -> EngineConfig:
        """Return a copy carrying thresholds from a backtest sweep.

        See :func:`medianlock.services.backtest.sweep_thresholds`.
        """
        return replace(
            self,
            edge_min=edge_min,
            hit_rate_min=hit_rate_min,
            minutes_floor=minutes_floor,
        )

    def __repr__(self) -> str:
        return (
            f"EngineConfig(edge_min={self.edge_min}, "
            f"hit_rate_min={self.hit_rate_min}, "
            f"minutes_floor={self.minutes_floor}, "
            f"lock={self.lock_threshold}, strong={self.strong_threshold})"
        )
