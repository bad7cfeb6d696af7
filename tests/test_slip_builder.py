"""
Tests for services/slip_builder.py

Run with: pytest tests/test_slip_builder.py -v
"""

import itertools

import pytest

from medianlock.core.config import EngineConfig
from medianlock.core.contracts import (
    BlockReason,
    EvaluationResult,
    ShockInfo,
    Side,
    StakeTier,
    Status,
)
from medianlock.services.slip_builder import (
    _slip_metrics,
    build_slate_slips,
    build_slips,
    eligible_pool,
    stake_tier,
)

CFG = EngineConfig.default()
SHOCKED = ShockInfo(role_shock=True, reasons=("Newly inserted into starting role",))


def _make_result(
    candidate_id,
    subject_id=None,
    event_id="E1",
    status=Status.LOCK,
    confidence=90.0,
    hit_rate=0.8,
    hit_rate_last5=1.0,
    juice_bonus=0.0,
    shock=None,
):
    return EvaluationResult(
        candidate_id=candidate_id,
        subject_id=subject_id or candidate_id,
        event_id=event_id,
        team="",
        stat_category="points",
        line=20.5,
        status=status,
        block_reason=BlockReason.LOW_CONFIDENCE if status == Status.BLOCK else None,
        side=Side.OVER,
        median_value=24.0,
        median_minutes=34.0,
        median_usage=25.0,
        median_shots=10.0,
        raw_edge=3.5,
        matchup_adjustment=0.0,
        adjusted_edge=3.5,
        split_edge=3.5,
        juice_bonus=juice_bonus,
        hit_rate=hit_rate,
        hit_rate_last5=hit_rate_last5,
        shock=shock or ShockInfo(),
        consistency_score=4.0,
        confidence_score=confidence,
    )


class TestEligiblePool:

    def test_locks_and_strongs_in_blocks_out(self):
        results = [
            _make_result("a"),
            _make_result("b", status=Status.STRONG, confidence=80.0),
            _make_result("c", status=Status.BLOCK, confidence=0.0),
        ]
        assert [r.candidate_id for r in eligible_pool(results, CFG)] == ["a", "b"]

    def test_shocked_strong_needs_recent_form(self):
        weak = _make_result("w", status=Status.STRONG, shock=SHOCKED, hit_rate_last5=0.6)
        firm = _make_result("f", status=Status.STRONG, shock=SHOCKED, hit_rate_last5=0.8)
        assert [r.candidate_id for r in eligible_pool([weak, firm], CFG)] == ["f"]

    def test_shocked_lock_always_eligible(self):
        lock = _make_result("l", shock=SHOCKED, hit_rate_last5=0.2)
        assert eligible_pool([lock], CFG) == [lock]


class TestSlipMetrics:

    def test_independent_legs(self):
        legs = [_make_result("a", event_id="E1"), _make_result("b", event_id="E2")]
        score, probability = _slip_metrics(legs, CFG)
        assert score == pytest.approx(180.0)
        assert probability == pytest.approx(0.64)

    def test_same_event_penalty(self):
        legs = [_make_result("a", event_id="E1"), _make_result("b", event_id="E1")]
        _, probability = _slip_metrics(legs, CFG)
        assert probability == pytest.approx(0.61)

    def test_hit_rate_clamped(self):
        legs = [
            _make_result("a", event_id="E1", hit_rate=1.0),
            _make_result("b", event_id="E2", hit_rate=0.3),
        ]
        _, probability = _slip_metrics(legs, CFG)
        assert probability == pytest.approx(0.95 * 0.55)

    def test_juice_and_strong_terms(self):
        legs = [
            _make_result("a", event_id="E1", confidence=90.0, juice_bonus=1.5),
            _make_result("b", event_id="E2", confidence=80.0, status=Status.STRONG),
        ]
        score, _ = _slip_metrics(legs, CFG)
        # 170 + 3 * 0.75 - 2 * 1
        assert score == pytest.approx(170.25)


@pytest.mark.parametrize("probability, tier", [
    (0.70, StakeTier.A),
    (0.62, StakeTier.A),
    (0.60, StakeTier.B),
    (0.55, StakeTier.B),
    (0.40, StakeTier.C),
])
def test_stake_tier(probability, tier):
    assert stake_tier(probability, CFG) == tier


class TestBuildSlips:

    def test_no_shared_subject(self):
        results = [
            _make_result("a1", subject_id="a", event_id="E1"),
            _make_result("a2", subject_id="a", event_id="E2"),
            _make_result("b", event_id="E3"),
        ]
        slips = build_slips(results, 2, CFG)
        assert {s.leg_ids for s in slips} == {("a1", "b"), ("a2", "b")}
        assert build_slips(results, 3, CFG) == []

    def test_pair_from_same_event_allowed(self):
        # two legs on X plus one on Y: every combination respects the cap
        results = [
            _make_result("x1", event_id="X"),
            _make_result("x2", event_id="X"),
            _make_result("y1", event_id="Y"),
        ]
        assert len(build_slips(results, 2, CFG)) == 3
        assert [s.leg_ids for s in build_slips(results, 3, CFG)] == [("x1", "x2", "y1")]

    def test_same_event_cap(self):
        results = [
            _make_result("x1", event_id="X"),
            _make_result("x2", event_id="X"),
            _make_result("x3", event_id="X"),
            _make_result("y1", event_id="Y"),
        ]
        slips = build_slips(results, 3, CFG)
        assert len(slips) == 3
        assert ("x1", "x2", "x3") not in {s.leg_ids for s in slips}
        for slip in slips:
            assert sum(1 for leg in slip.leg_ids if leg.startswith("x")) <= CFG.max_same_event

    def test_ranked_by_score(self):
        results = [
            _make_result("a", event_id="E1", confidence=95.0),
            _make_result("b", event_id="E2", confidence=85.0),
            _make_result("c", event_id="E3", confidence=90.0),
        ]
        slips = build_slips(results, 2, CFG)
        assert [s.leg_ids for s in slips] == [("a", "c"), ("a", "b"), ("b", "c")]

    def test_ties_keep_enumeration_order(self):
        results = [_make_result(c, event_id=c) for c in "abcd"]
        slips = build_slips(results, 2, CFG)
        assert [s.leg_ids for s in slips] == list(itertools.combinations("abcd", 2))

    def test_probability_strictly_inside_unit_interval(self):
        results = [
            _make_result(c, event_id="E1" if i < 2 else "E2", hit_rate=h)
            for i, (c, h) in enumerate(zip("abcd", (1.0, 0.99, 0.1, 0.5)))
        ]
        for k in (2, 3):
            for slip in build_slips(results, k, CFG):
                assert 0.0 < slip.probability < 1.0

    def test_max_slips(self):
        results = [_make_result(c, event_id=c) for c in "abcdef"]
        assert len(build_slips(results, 2, CFG)) == CFG.max_slips
        assert len(build_slips(results, 2, CFG, max_slips=3)) == 3

    def test_deterministic(self):
        results = [
            _make_result(c, event_id="E1" if c in "ab" else c, confidence=85.0 + i)
            for i, c in enumerate("abcdef")
        ]
        assert build_slips(results, 3, CFG) == build_slips(results, 3, CFG)

    def test_pool_too_small(self):
        assert build_slips([_make_result("a")], 2, CFG) == []
        assert build_slips([], 3, CFG) == []

    @pytest.mark.parametrize("num_legs", [1, 4])
    def test_unsupported_size(self, num_legs):
        with pytest.raises(ValueError, match="num_legs"):
            build_slips([_make_result("a")], num_legs, CFG)

    def test_large_pool_warns(self, caplog):
        cfg = CFG.with_overrides(max_exhaustive_pool=3)
        results = [_make_result(c, event_id=c) for c in "abcd"]
        with caplog.at_level("WARNING"):
            build_slips(results, 2, cfg)
        assert "exceeds exhaustive limit" in caplog.text


def test_build_slate_slips_keys():
    results = [_make_result(c, event_id=c) for c in "abc"]
    slips = build_slate_slips(results, CFG)
    assert sorted(slips) == [2, 3]
    assert len(slips[2]) == 3
    assert len(slips[3]) == 1


def test_probability_positive_at_loosest_valid_config():
    cfg = CFG.with_overrides(prob_clamp_min=0.4, max_same_event=3, same_event_penalty=0.06)
    results = [_make_result(c, event_id="E1", hit_rate=0.1) for c in "abc"]
    slips = build_slips(results, 3, cfg)
    assert len(slips) == 1
    assert 0.0 < slips[0].probability < 1.0
