"""
Tests for services/backtest.py

Run with: pytest tests/test_backtest.py -v
"""

import pytest

from medianlock.core.contracts import (
    BlockReason,
    EvaluationResult,
    Location,
    ShockInfo,
    Side,
    Status,
)
from medianlock.services.backtest import (
    DEFAULT_TUNED,
    SettledCandidate,
    SettledSlip,
    summarize_backtest,
    sweep_thresholds,
)


def _make_result(
    status=Status.LOCK,
    block_reason=None,
    adjusted_edge=3.0,
    hit_rate=0.85,
    median_minutes=34.0,
    juice_bonus=0.0,
    shock=None,
    confidence=90.0,
):
    return EvaluationResult(
        candidate_id="c",
        subject_id="p",
        event_id="E",
        team="",
        stat_category="points",
        line=20.5,
        status=status,
        block_reason=block_reason,
        side=Side.OVER,
        median_value=24.0,
        median_minutes=median_minutes,
        median_usage=25.0,
        median_shots=10.0,
        raw_edge=adjusted_edge,
        matchup_adjustment=0.0,
        adjusted_edge=adjusted_edge,
        split_edge=adjusted_edge,
        juice_bonus=juice_bonus,
        hit_rate=hit_rate,
        hit_rate_last5=hit_rate,
        shock=shock or ShockInfo(),
        consistency_score=4.0,
        confidence_score=confidence if status != Status.BLOCK else 0.0,
    )


def _settled(hit, date="2026-01-10", location=Location.HOME, rank=None, **kwargs):
    return SettledCandidate(
        result=_make_result(**kwargs),
        hit=hit,
        slate_date=date,
        location=location,
        opponent_strength_rank=rank,
    )


class TestSummarizeBacktest:

    def test_empty(self):
        summary = summarize_backtest([])
        assert summary.lock_count == 0
        assert summary.p_value is None
        assert summary.breakeven_rate == pytest.approx(0.5238, abs=1e-4)

    def test_hit_rates_by_class(self):
        candidates = [
            _settled(True),
            _settled(True),
            _settled(False),
            _settled(True, status=Status.STRONG, confidence=80.0),
            _settled(False, status=Status.STRONG, confidence=80.0),
        ]
        summary = summarize_backtest(candidates)
        assert summary.lock_count == 3
        assert summary.strong_count == 2
        assert summary.lock_only_hit_rate == pytest.approx(2 / 3)
        assert summary.lock_strong_hit_rate == pytest.approx(3 / 5)
        assert summary.avg_confidence_score == pytest.approx(86.0)

    def test_slates_counted_by_date(self):
        candidates = [
            _settled(True, date="2026-01-10"),
            _settled(True, date="2026-01-10"),
            _settled(True, date="2026-01-11"),
        ]
        assert summarize_backtest(candidates).slates_analyzed == 2

    def test_slip_rates(self):
        slips = [
            SettledSlip(2, True, "d"),
            SettledSlip(2, False, "d"),
            SettledSlip(3, True, "d"),
        ]
        summary = summarize_backtest([_settled(True)], slips)
        assert summary.slip_counts == {2: 2, 3: 1}
        assert summary.slip_hit_rates[2] == pytest.approx(0.5)
        assert summary.slip_hit_rates[3] == pytest.approx(1.0)

    def test_top_fail_reasons(self):
        candidates = (
            [_settled(False, status=Status.BLOCK, block_reason=BlockReason.LOW_MINUTES)] * 3
            + [_settled(False, status=Status.BLOCK, block_reason=BlockReason.BAD_MATCHUP)]
        )
        summary = summarize_backtest(candidates)
        assert summary.block_count == 4
        assert summary.top_fail_reasons == [("Low Minutes", 3), ("Bad Matchup", 1)]
        assert summary.p_value is None

    def test_juice_and_shock_rates(self):
        shocked_ok = ShockInfo(role_shock=True, passed_validation=True)
        candidates = [
            _settled(True, juice_bonus=1.5),
            _settled(False, juice_bonus=1.5),
            _settled(True, status=Status.STRONG, shock=shocked_ok),
            _settled(True),
        ]
        summary = summarize_backtest(candidates)
        assert summary.juice_bonus_win_rate == pytest.approx(0.5)
        assert summary.shock_flag_rate == pytest.approx(0.25)
        assert summary.shock_pass_rate == pytest.approx(1.0)

    def test_buckets(self):
        candidates = [
            _settled(True, rank=5, median_minutes=35.0),
            _settled(False, rank=25, median_minutes=29.0, location=Location.AWAY),
            _settled(True, rank=None, median_minutes=31.0),
        ]
        summary = summarize_backtest(candidates)
        defense = {b.bucket: (b.hit_rate, b.count) for b in summary.defense_buckets}
        assert defense == {
            "elite (1-10)": (1.0, 1),
            "average (11-20)": (1.0, 1),
            "weak (21+)": (0.0, 1),
        }
        assert [b.bucket for b in summary.minutes_buckets] == ["<30", "30-33", "33+"]
        location = {b.bucket: b.count for b in summary.location_buckets}
        assert location == {"HOME": 2, "AWAY": 1}

    def test_significance(self):
        strong_record = [_settled(True)] * 45 + [_settled(False)] * 5
        coin_flip = [_settled(True)] * 25 + [_settled(False)] * 25
        assert summarize_backtest(strong_record).p_value < 0.001
        assert summarize_backtest(coin_flip).p_value > 0.5


class TestSweepThresholds:

    def test_small_sample_keeps_defaults(self):
        tuned = sweep_thresholds([_settled(True)] * 10)
        assert (tuned.edge_min, tuned.hit_rate_min, tuned.minutes_floor) == DEFAULT_TUNED
        assert tuned.sample == 0

    def test_finds_best_cell(self):
        good = [_settled(True, adjusted_edge=3.0, hit_rate=0.9, median_minutes=34.0)] * 15
        bad = [_settled(False, adjusted_edge=1.2, hit_rate=0.72, median_minutes=27.0)] * 15
        tuned = sweep_thresholds(good + bad)
        # first grid cell that drops every bad candidate
        assert tuned.edge_min == 1.0
        assert tuned.hit_rate_min == 0.70
        assert tuned.minutes_floor == 28.0
        assert tuned.hit_rate == pytest.approx(1.0)
        assert tuned.sample == 15

    def test_blocks_ignored(self):
        blocks = [_settled(True, status=Status.BLOCK, block_reason=BlockReason.LOW_MINUTES)] * 30
        tuned = sweep_thresholds(blocks)
        assert (tuned.edge_min, tuned.hit_rate_min, tuned.minutes_floor) == DEFAULT_TUNED


def test_averages_over_passing_only():
    candidates = [
        _settled(True, adjusted_edge=2.0, median_minutes=30.0),
        _settled(True, adjusted_edge=4.0, median_minutes=34.0),
        _settled(False, status=Status.BLOCK, block_reason=BlockReason.LOW_MINUTES,
                 adjusted_edge=0.1, median_minutes=10.0),
    ]
    summary = summarize_backtest(candidates)
    assert summary.avg_edge == pytest.approx(3.0)
    assert summary.avg_minutes == pytest.approx(32.0)
    assert isinstance(summary.avg_edge, float)
