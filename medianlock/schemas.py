"""
Pydantic boundary schemas for the MedianLock engine.

The engine itself works on frozen dataclasses; these models sit at the edge
where candidates arrive as JSON from the data layer and results leave for a
dashboard or report.  Validation of untrusted input happens here, so the
pipeline can assume well-formed series.

Field names are camelCase on the wire and snake_case in Python; either form
is accepted on input.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from medianlock.core.config import EngineConfig
from medianlock.core.contracts import Candidate, EvaluationResult, Location, Slip

_WIRE_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _check_american(v: Optional[float], name: str) -> Optional[float]:
    if v is None:
        return v
    if -100 < v < 100:
        raise ValueError(
            f"{name}={v} is not valid American odds. Must be >= +100 or <= -100."
        )
    return v


# ---------------------------------------------------------------------------
# Candidate input
# ---------------------------------------------------------------------------

class CandidateIn(BaseModel):
    """
    One proposition as delivered by the data layer.

    Every historical series is ordered most recent first.  ``minutes`` must
    be as long as ``values``; ``usage``, ``shotAttempts`` and
    ``locationFlags`` may be omitted but, when given, must match too.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "subjectId": "p-1627759",
                "subjectName": "Jaylen Brown",
                "team": "BOS",
                "eventId": "2026-01-14-BOS-MIA",
                "statCategory": "points",
                "line": 22.5,
                "values": [27, 25, 26, 24, 28, 23, 26],
                "minutes": [35, 34, 36, 33, 35, 34, 36],
                "opponentStrengthRank": 22,
                "location": "AWAY",
                "currentPrice": -125,
                "openingPrice": -110,
            }
        },
    )

    candidate_id: Optional[str] = Field(None, max_length=200)
    subject_id: str = Field(..., min_length=1, max_length=120)
    subject_name: str = Field("", max_length=120)
    team: str = Field("", max_length=40)
    event_id: str = Field("", max_length=120)
    opponent_id: str = Field("", max_length=40)
    stat_category: str = Field(..., min_length=1, max_length=40)
    line: float

    values: List[float] = Field(..., description="Stat values, most recent first")
    minutes: List[float] = Field(..., description="Minutes per game, most recent first")
    usage: List[float] = Field(default_factory=list)
    shot_attempts: List[float] = Field(default_factory=list)
    location_flags: List[Literal["HOME", "AWAY"]] = Field(default_factory=list)

    opponent_strength_rank: Optional[int] = Field(None, description="1 = strongest opponent")
    location: Literal["HOME", "AWAY"] = "HOME"
    current_price: float = -110
    opening_price: float = -110

    teammates_unavailable: List[str] = Field(default_factory=list)
    is_newly_starting: bool = False

    @field_validator("current_price", "opening_price")
    @classmethod
    def validate_american_odds(cls, v: float, info) -> float:
        return _check_american(v, info.field_name)

    @field_validator("minutes")
    @classmethod
    def validate_minutes(cls, v: List[float]) -> List[float]:
        if any(m < 0 for m in v):
            raise ValueError("minutes cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_series_lengths(self) -> CandidateIn:
        n = len(self.values)
        if len(self.minutes) != n:
            raise ValueError(
                f"minutes has {len(self.minutes)} entries but values has {n}"
            )
        for name in ("usage", "shot_attempts", "location_flags"):
            series = getattr(self, name)
            if series and len(series) != n:
                raise ValueError(f"{name} has {len(series)} entries but values has {n}")
        return self

    def to_candidate(self) -> Candidate:
        return Candidate(
            subject_id=self.subject_id,
            stat_category=self.stat_category,
            line=self.line,
            values=tuple(self.values),
            minutes=tuple(self.minutes),
            candidate_id=self.candidate_id or "",
            subject_name=self.subject_name,
            team=self.team,
            event_id=self.event_id,
            opponent_id=self.opponent_id,
            opponent_strength_rank=self.opponent_strength_rank,
            location=Location(self.location),
            current_price=self.current_price,
            opening_price=self.opening_price,
            usage=tuple(self.usage),
            shot_attempts=tuple(self.shot_attempts),
            location_flags=tuple(Location(f) for f in self.location_flags),
            teammates_unavailable=tuple(self.teammates_unavailable),
            is_newly_starting=self.is_newly_starting,
        )


# ---------------------------------------------------------------------------
# Config overrides
# ---------------------------------------------------------------------------

class ConfigOverrides(BaseModel):
    """
    Partial threshold overrides, e.g. from a tuning run.

    Unset fields keep the base config's value.
    """

    model_config = _WIRE_CONFIG

    edge_min: Optional[float] = Field(None, ge=0)
    hit_rate_min: Optional[float] = Field(None, ge=0.0, le=1.0)
    minutes_floor: Optional[float] = Field(None, ge=0)
    minutes_min: Optional[float] = Field(None, ge=0)
    split_edge_min: Optional[float] = None
    adjusted_edge_min: Optional[float] = None
    min_observations: Optional[int] = Field(None, ge=1)
    lock_threshold: Optional[float] = None
    strong_threshold: Optional[float] = None
    max_same_event: Optional[int] = Field(None, ge=1)
    max_slips: Optional[int] = Field(None, ge=1)

    def apply(self, config: Optional[EngineConfig] = None) -> EngineConfig:
        config = config or EngineConfig.default()
        return config.with_overrides(**self.model_dump(exclude_none=True))


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class EvaluationResultOut(BaseModel):
    """Serialised :class:`EvaluationResult`."""

    model_config = _WIRE_CONFIG

    candidate_id: str
    subject_id: str
    event_id: str
    team: str
    stat_category: str
    line: float
    status: str
    block_reason: Optional[str] = None
    side: str
    confidence_score: float
    consistency_score: float
    medians: Dict[str, float]
    edges: Dict[str, float]
    hit_rates: Dict[str, float]
    shock_info: Dict[str, Any]
    passed_checks: List[str]
    failed_checks: List[str]

    @classmethod
    def from_result(cls, r: EvaluationResult) -> EvaluationResultOut:
        return cls(
            candidate_id=r.candidate_id,
            subject_id=r.subject_id,
            event_id=r.event_id,
            team=r.team,
            stat_category=r.stat_category,
            line=r.line,
            status=r.status.value,
            block_reason=r.block_reason.value if r.block_reason else None,
            side=r.side.value,
            confidence_score=round(r.confidence_score, 2),
            consistency_score=round(r.consistency_score, 3),
            medians={
                "value": r.median_value,
                "minutes": r.median_minutes,
                "usage": r.median_usage,
                "shots": r.median_shots,
            },
            edges={
                "raw": r.raw_edge,
                "matchupAdjustment": r.matchup_adjustment,
                "adjusted": r.adjusted_edge,
                "split": r.split_edge,
                "juiceBonus": r.juice_bonus,
            },
            hit_rates={"overall": r.hit_rate, "last5": r.hit_rate_last5},
            shock_info={
                "isShocked": r.shock.is_shocked,
                "passedValidation": r.shock.passed_validation,
                "minutesShock": r.shock.minutes_shock,
                "usageShock": r.shock.usage_shock,
                "shotsShock": r.shock.shots_shock,
                "teammatesShock": r.shock.teammates_shock,
                "roleShock": r.shock.role_shock,
                "teammatesOut": r.shock.teammates_out_count,
                "reasons": list(r.shock.reasons),
            },
            passed_checks=r.passed_checks,
            failed_checks=r.failed_checks,
        )


class SlipOut(BaseModel):
    """Serialised :class:`Slip`."""

    model_config = _WIRE_CONFIG

    legs: List[str]
    size: int
    slip_score: float
    probability: float = Field(..., ge=0.0, le=1.0)
    stake_tier: Literal["A", "B", "C"]

    @classmethod
    def from_slip(cls, s: Slip) -> SlipOut:
        return cls(
            legs=list(s.leg_ids),
            size=s.size,
            slip_score=round(s.slip_score, 2),
            probability=round(s.probability, 4),
            stake_tier=s.stake_tier.value,
        )
