"""
MedianLock engine: slate-level orchestration.

Runs every candidate on a slate through the same fixed sequence:

    skip check → EligibilityPipeline → ConfidenceScorer → SlipBuilder

and returns one :class:`SlateReport`.  Nothing here touches a database, a
clock or a random source: identical candidates and config always produce an
identical report.

- Candidates with fewer than ``min_observations`` games are *skipped*, never
  graded.
- Duplicate (subject, stat category) pairs keep the first occurrence.
- 2-leg and 3-leg slips are built from the LOCK / STRONG pool.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from medianlock.core.config import EngineConfig
from medianlock.core.contracts import Candidate, EvaluationResult, Slip, Status
from medianlock.services.eligibility import EligibilityPipeline
from medianlock.services.scoring import score_record
from medianlock.services.slip_builder import build_slate_slips

logger = logging.getLogger(__name__)

SKIP_INSUFFICIENT_HISTORY = "insufficient history"
SKIP_DUPLICATE = "duplicate subject/category"


@dataclass(frozen=True)
class SkippedCandidate:
    candidate_id: str
    reason: str
    observations: int = 0


@dataclass
class SlateReport:
    """Complete output for one slate."""

    results: List[EvaluationResult] = field(default_factory=list)
    skipped: List[SkippedCandidate] = field(default_factory=list)
    slips: Dict[int, List[Slip]] = field(default_factory=dict)

    def count(self, status: Status) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def shock_flagged(self) -> int:
        return sum(1 for r in self.results if r.is_shock_flagged)

    def top_locks(self, n: int = 5) -> List[EvaluationResult]:
        """Highest-confidence LOCKs, ties in slate order."""
        locks = [r for r in self.results if r.status == Status.LOCK]
        return sorted(locks, key=lambda r: r.confidence_score, reverse=True)[:n]

    def summary(self) -> Dict:
        return {
            "total_candidates": len(self.results),
            "skipped": len(self.skipped),
            "locks": self.count(Status.LOCK),
            "strongs": self.count(Status.STRONG),
            "blocks": self.count(Status.BLOCK),
            "shock_flagged": self.shock_flagged,
            "slips": {size: len(s) for size, s in self.slips.items()},
            "top_locks": [
                {
                    "candidate_id": r.candidate_id,
                    "confidence": round(r.confidence_score, 2),
                    "hit_rate": r.hit_rate,
                    "edge": r.adjusted_edge,
                }
                for r in self.top_locks()
            ],
        }


class MedianLockEngine:
    """
    Evaluates candidates and builds slips with one injected config.

    The engine keeps no state between calls beyond its config and the
    pipeline built from it.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig.default()
        self.pipeline = EligibilityPipeline(self.config)

    def is_evaluable(self, candidate: Candidate) -> bool:
        return candidate.observations >= self.config.min_observations

    def evaluate(self, candidate: Candidate) -> Optional[EvaluationResult]:
        """
        Grade one candidate.

        Returns:
            :class:`EvaluationResult`, or ``None`` when the candidate has too
            little history to be evaluated (a skip, not a block).
        """
        if not self.is_evaluable(candidate):
            logger.debug(
                "Skipping %s: %d observations < %d",
                candidate.candidate_id, candidate.observations, self.config.min_observations,
            )
            return None

        record = self.pipeline.run(candidate)
        result = score_record(record, self.config)
        logger.debug(
            "%s → %s%s (score %.1f)",
            candidate.candidate_id,
            result.status.value,
            f" [{result.block_reason.value}]" if result.block_reason else "",
            result.confidence_score,
        )
        return result

    def evaluate_many(
        self, candidates: Iterable[Candidate]
    ) -> Tuple[List[EvaluationResult], List[SkippedCandidate]]:
        results: List[EvaluationResult] = []
        skipped: List[SkippedCandidate] = []
        seen = set()

        for candidate in candidates:
            key = (candidate.subject_id, candidate.stat_category)
            if key in seen:
                skipped.append(
                    SkippedCandidate(candidate.candidate_id, SKIP_DUPLICATE, candidate.observations)
                )
                continue
            seen.add(key)

            result = self.evaluate(candidate)
            if result is None:
                skipped.append(
                    SkippedCandidate(
                        candidate.candidate_id, SKIP_INSUFFICIENT_HISTORY, candidate.observations
                    )
                )
                continue
            results.append(result)

        return results, skipped

    def evaluate_slate(self, candidates: Iterable[Candidate]) -> SlateReport:
        """Grade a slate and build its slips."""
        results, skipped = self.evaluate_many(candidates)
        report = SlateReport(
            results=results,
            skipped=skipped,
            slips=build_slate_slips(results, self.config),
        )

        logger.info(
            "Slate evaluated: %d graded, %d skipped; %d LOCK, %d STRONG, %d BLOCK, %d shock-flagged",
            len(results),
            len(skipped),
            report.count(Status.LOCK),
            report.count(Status.STRONG),
            report.count(Status.BLOCK),
            report.shock_flagged,
        )
        return report
