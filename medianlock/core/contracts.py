"""Data-transfer objects shared by every stage of the engine.

The flow of types mirrors the control flow::

    Candidate ──► PipelineRecord ──► EvaluationResult ──► Slip

* :class:`Candidate` is the input record, immutable for one run.
* :class:`PipelineRecord` is the eligibility pipeline's intermediate output:
  medians, edges, hit rates and shock info, either blocked with a reason or
  ready for scoring.
* :class:`EvaluationResult` is the scored, classified record handed back to
  the caller.  It copies the identity fields the slip builder needs so the
  builder never touches a :class:`Candidate`.
* :class:`Slip` references legs by candidate id only.

Diagnostics are closed enums (:class:`BlockReason`, :class:`Check`) rather
than free-text dictionaries, so every rejection path is enumerable in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Side(str, Enum):
    OVER = "OVER"
    UNDER = "UNDER"
    NONE = "NONE"


class Location(str, Enum):
    HOME = "HOME"
    AWAY = "AWAY"


class Status(str, Enum):
    LOCK = "LOCK"
    STRONG = "STRONG"
    BLOCK = "BLOCK"


class BlockReason(str, Enum):
    """Every reason a candidate can be blocked, in pipeline order."""

    NO_CLEAR_EDGE = "No Clear Edge"
    LOW_MINUTES = "Low Minutes"
    BAD_MATCHUP = "Bad Matchup"
    WEAK_SPLIT_EDGE = "Weak Split Edge"
    SHOCK_VALIDATION_FAILED = "Shock Validation Failed"
    LOW_CONFIDENCE = "Low Confidence"


class Check(str, Enum):
    """Pipeline stages that record a :class:`CheckOutcome`."""

    SIDE_EDGE = "side_edge"
    MINUTES_FLOOR = "minutes_floor"
    MATCHUP = "matchup"
    LOCATION_SPLIT = "location_split"
    PRICE_MOVEMENT = "price_movement"
    SHOCK = "shock"
    CONFIDENCE = "confidence"


class StakeTier(str, Enum):
    A = "A"
    B = "B"
    C = "C"


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Candidate:
    """A single proposition: subject, stat category and line.

    All ``*`` series are parallel and ordered most-recent-first.  ``usage``
    and ``shot_attempts`` may be empty when the data layer has no feed for
    them; the shock detector then falls back to baseline constants.

    ``candidate_id`` defaults to ``"<subject_id>:<stat_category>:<event_id>"``
    so ids stay stable across runs without a random source.
    """

    subject_id: str
    stat_category: str
    line: float
    values: Tuple[float, ...]
    minutes: Tuple[float, ...]

    candidate_id: str = ""
    subject_name: str = ""
    team: str = ""
    event_id: str = ""
    opponent_id: str = ""
    opponent_strength_rank: Optional[int] = None
    location: Location = Location.HOME

    current_price: float = -110
    opening_price: float = -110

    usage: Tuple[float, ...] = ()
    shot_attempts: Tuple[float, ...] = ()
    location_flags: Tuple[Location, ...] = ()

    teammates_unavailable: Tuple[str, ...] = ()
    is_newly_starting: bool = False

    def __post_init__(self) -> None:
        if not self.candidate_id:
            object.__setattr__(
                self,
                "candidate_id",
                f"{self.subject_id}:{self.stat_category}:{self.event_id}",
            )

    @property
    def observations(self) -> int:
        return len(self.values)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckOutcome:
    check: Check
    passed: bool
    detail: str


@dataclass(frozen=True)
class ShockInfo:
    """Per-signal shock flags plus the secondary-validation verdict.

    ``passed_validation`` is ``True`` for an un-shocked candidate: there was
    nothing to validate.
    """

    minutes_shock: bool = False
    usage_shock: bool = False
    shots_shock: bool = False
    teammates_shock: bool = False
    role_shock: bool = False
    passed_validation: bool = True
    teammates_out_count: int = 0
    reasons: Tuple[str, ...] = ()

    @property
    def is_shocked(self) -> bool:
        return (
            self.minutes_shock
            or self.usage_shock
            or self.shots_shock
            or self.teammates_shock
            or self.role_shock
        )


# ---------------------------------------------------------------------------
# Pipeline output
# ---------------------------------------------------------------------------


@dataclass
class PipelineRecord:
    """Intermediate record built up gate by gate.

    Fields past the blocking gate keep their neutral defaults.
    """

    candidate: Candidate
    side: Side = Side.NONE
    block_reason: Optional[BlockReason] = None

    median_value: float = 0.0
    median_minutes: float = 0.0
    median_usage: float = 0.0
    median_shots: float = 0.0

    raw_edge: float = 0.0
    matchup_adjustment: float = 0.0
    adjusted_edge: float = 0.0
    split_edge: float = 0.0
    juice_bonus: float = 0.0

    hit_rate: float = 0.0
    hit_rate_last5: float = 0.0

    shock: ShockInfo = field(default_factory=ShockInfo)
    checks: List[CheckOutcome] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.block_reason is not None

    def passed(self, check: Check, detail: str) -> None:
        self.checks.append(CheckOutcome(check, True, detail))

    def failed(self, check: Check, detail: str, reason: BlockReason) -> PipelineRecord:
        self.checks.append(CheckOutcome(check, False, detail))
        self.block_reason = reason
        return self


@dataclass(frozen=True)
class EvaluationResult:
    """Scored and classified candidate.  ``block_reason`` is set iff BLOCK."""

    candidate_id: str
    subject_id: str
    event_id: str
    team: str
    stat_category: str
    line: float

    status: Status
    block_reason: Optional[BlockReason]
    side: Side

    median_value: float
    median_minutes: float
    median_usage: float
    median_shots: float

    raw_edge: float
    matchup_adjustment: float
    adjusted_edge: float
    split_edge: float
    juice_bonus: float

    hit_rate: float
    hit_rate_last5: float

    shock: ShockInfo
    consistency_score: float
    confidence_score: float
    checks: Tuple[CheckOutcome, ...] = ()

    @property
    def is_shock_flagged(self) -> bool:
        return self.shock.is_shocked

    @property
    def is_passing(self) -> bool:
        return self.status in (Status.LOCK, Status.STRONG)

    @property
    def passed_checks(self) -> List[str]:
        return [c.detail for c in self.checks if c.passed]

    @property
    def failed_checks(self) -> List[str]:
        return [c.detail for c in self.checks if not c.passed]


# ---------------------------------------------------------------------------
# Slip output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Slip:
    """A multi-leg combination.  Legs are referenced by candidate id only."""

    leg_ids: Tuple[str, ...]
    slip_score: float
    probability: float
    stake_tier: StakeTier

    @property
    def size(self) -> int:
        return len(self.leg_ids)
