"""
Tests for services/side_selector.py

Run with: pytest tests/test_side_selector.py -v
"""

import pytest

from medianlock.core.config import EngineConfig
from medianlock.core.contracts import Side
from medianlock.services.side_selector import select_side

CFG = EngineConfig.default()

# median 26, population variance ~2.53, every game over 22.5
STEADY_OVER = (27, 25, 26, 24, 28, 23, 26)
# median 18, every game under 22.5
STEADY_UNDER = (18, 19, 17, 20, 18, 19, 17)


class TestOver:

    def test_clear_over(self):
        sel = select_side(STEADY_OVER, 22.5, CFG)
        assert sel.side == Side.OVER
        assert sel.edge == pytest.approx(3.5)
        assert sel.hit_rate == pytest.approx(1.0)
        assert sel.rejections == ()

    def test_variance_cap(self):
        # median 30 (edge 7.5), hit rate 5/7, but variance ~126
        sel = select_side((40, 10, 35, 12, 38, 30, 30), 22.5, CFG)
        assert sel.side == Side.NONE
        assert sel.variance > CFG.over_variance_max
        assert any("OVER variance" in r for r in sel.rejections)

    def test_edge_buffer(self):
        # edge 1.2 clears edge_min 1.0 but not the 1.5 OVER buffer
        sel = select_side((24, 24, 24, 24, 24), 22.8, CFG)
        assert sel.side == Side.NONE
        assert any("buffer" in r for r in sel.rejections)

    def test_recent_form(self):
        # strong series overall, but only 1 of the last 3 cleared
        sel = select_side((20, 20, 26, 26, 26, 26, 26, 26, 26), 22.5, CFG)
        assert sel.side == Side.NONE
        assert any("OVER recent form 1/3" in r for r in sel.rejections)

    def test_relaxed_buffer_admits_small_edge(self):
        cfg = CFG.with_overrides(over_edge_buffer=1.0)
        sel = select_side((24, 24, 24, 24, 24), 22.8, cfg)
        assert sel.side == Side.OVER


class TestUnder:

    def test_clear_under(self):
        sel = select_side(STEADY_UNDER, 22.5, CFG)
        assert sel.side == Side.UNDER
        assert sel.edge == pytest.approx(4.5)
        assert sel.hit_rate == pytest.approx(1.0)
        # OVER was tried first and its rejections are kept
        assert any(r.startswith("OVER") for r in sel.rejections)

    def test_median_floor(self):
        # median 5 is below 0.6 * 12 = 7.2
        sel = select_side((5, 5, 5, 5, 5), 12.0, CFG)
        assert sel.side == Side.NONE
        assert any("UNDER median" in r for r in sel.rejections)

    def test_tighter_variance_cap(self):
        # variance 30.25: inside the OVER cap, outside the UNDER cap
        values = (13, 24, 13, 24, 13, 24, 13, 24, 13, 24)
        sel = select_side(values, 25.0, CFG)
        assert CFG.under_variance_max < sel.variance <= CFG.over_variance_max
        assert sel.side == Side.NONE


class TestNoSide:

    def test_median_on_line(self):
        sel = select_side((23, 22, 23, 22, 23, 22, 23), 22.5, CFG)
        assert sel.side == Side.NONE
        assert sel.edge == pytest.approx(0.5)

    def test_reports_larger_edge_direction(self):
        sel = select_side((5, 5, 5, 5, 5), 12.0, CFG)
        assert sel.edge == pytest.approx(7.0)
        assert sel.hit_rate == pytest.approx(1.0)

    def test_deterministic(self):
        assert select_side(STEADY_OVER, 22.5, CFG) == select_side(STEADY_OVER, 22.5, CFG)
