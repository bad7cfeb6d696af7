"""
Confidence scoring and tier classification.

The composite score weights five factors and one penalty::

    score = adjusted_edge * 3.5
          + hit_rate * 40
          + (median_minutes / 30) * 10
          + min(consistency, 5) * 8
          + juice_bonus * 5
          - (6 if shocked else 0)

    consistency = median / stddev        (median when stddev == 0)

Classification::

    score >= 85        → LOCK
    75 <= score < 85   → STRONG
    score < 75         → BLOCK ("Low Confidence")

Every function here is pure; weights and boundaries come from the injected
:class:`EngineConfig`.
"""

from typing import Optional, Sequence, Tuple

from medianlock.core import stats
from medianlock.core.config import EngineConfig
from medianlock.core.contracts import (
    BlockReason,
    Check,
    CheckOutcome,
    EvaluationResult,
    PipelineRecord,
    Status,
)


def consistency_score(values: Sequence[float]) -> float:
    """Median over population standard deviation; the median if sd is zero."""
    center = stats.median(values)
    sd = stats.stddev(values)
    if sd > 0:
        return center / sd
    return center


def confidence_score(
    *,
    adjusted_edge: float,
    hit_rate: float,
    median_minutes: float,
    consistency: float,
    juice_bonus: float,
    is_shocked: bool,
    config: EngineConfig,
) -> float:
    """Weighted composite score.  Non-decreasing in ``adjusted_edge``."""
    return (
        adjusted_edge * config.edge_weight
        + hit_rate * config.hit_rate_weight
        + (median_minutes / config.minutes_baseline) * config.minutes_weight
        + min(consistency, config.consistency_cap) * config.consistency_weight
        + juice_bonus * config.juice_weight
        - (config.shock_penalty if is_shocked else 0.0)
    )


def classify(score: float, config: EngineConfig) -> Tuple[Status, Optional[BlockReason]]:
    if score >= config.lock_threshold:
        return Status.LOCK, None
    if score >= config.strong_threshold:
        return Status.STRONG, None
    return Status.BLOCK, BlockReason.LOW_CONFIDENCE


def _result(
    record: PipelineRecord,
    status: Status,
    block_reason: Optional[BlockReason],
    consistency: float,
    score: float,
    checks: Tuple[CheckOutcome, ...],
) -> EvaluationResult:
    c = record.candidate
    return EvaluationResult(
        candidate_id=c.candidate_id,
        subject_id=c.subject_id,
        event_id=c.event_id,
        team=c.team,
        stat_category=c.stat_category,
        line=c.line,
        status=status,
        block_reason=block_reason,
        side=record.side,
        median_value=record.median_value,
        median_minutes=record.median_minutes,
        median_usage=record.median_usage,
        median_shots=record.median_shots,
        raw_edge=record.raw_edge,
        matchup_adjustment=record.matchup_adjustment,
        adjusted_edge=record.adjusted_edge,
        split_edge=record.split_edge,
        juice_bonus=record.juice_bonus,
        hit_rate=record.hit_rate,
        hit_rate_last5=record.hit_rate_last5,
        shock=record.shock,
        consistency_score=consistency,
        confidence_score=score,
        checks=checks,
    )


def blocked_result(record: PipelineRecord) -> EvaluationResult:
    """Result for a record the pipeline already blocked.  Scores stay 0."""
    return _result(record, Status.BLOCK, record.block_reason, 0.0, 0.0, tuple(record.checks))


def score_record(record: PipelineRecord, config: EngineConfig) -> EvaluationResult:
    """
    Score a pipeline record and classify it.

    A record the pipeline blocked is passed through as a BLOCK result
    without scoring.
    """
    if record.blocked:
        return blocked_result(record)

    consistency = consistency_score(record.candidate.values)
    score = confidence_score(
        adjusted_edge=record.adjusted_edge,
        hit_rate=record.hit_rate,
        median_minutes=record.median_minutes,
        consistency=consistency,
        juice_bonus=record.juice_bonus,
        is_shocked=record.shock.is_shocked,
        config=config,
    )
    status, reason = classify(score, config)

    if status == Status.BLOCK:
        outcome = CheckOutcome(
            Check.CONFIDENCE, False, f"Confidence {score:.1f} < {config.strong_threshold:g} → BLOCK"
        )
    else:
        boundary = config.lock_threshold if status == Status.LOCK else config.strong_threshold
        outcome = CheckOutcome(
            Check.CONFIDENCE, True, f"Confidence {score:.1f} ≥ {boundary:g} → {status.value}"
        )

    return _result(record, status, reason, consistency, score, tuple(record.checks) + (outcome,))
