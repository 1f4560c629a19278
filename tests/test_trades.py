"""
Tests for trade detection.

A 64-tick match is assumed: a 5 second window is 320 ticks and a fast
trade is within 128 ticks.
"""

from ecorating.core.config import TradeConfig
from ecorating.core.constants import Side
from ecorating.core.events import Position
from ecorating.domains.trades import TradeDetector


def _detector() -> TradeDetector:
    return TradeDetector.from_config(TradeConfig(), tick_rate=64)


class TestWindows:
    """Tests for opening and expiring trade windows."""

    def test_window_length_from_config(self):
        """5 seconds at 64 tick."""
        detector = _detector()
        window = detector.open_window("t1", Side.T, "ct1", tick=1000)
        assert window.expires_tick == 1320

    def test_expire_returns_untraded(self):
        """Windows past their expiry close as untraded."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        assert detector.expire(1320) == []
        expired = detector.expire(1321)
        assert [w.victim_id for w in expired] == ["t1"]
        assert detector.open_windows() == []

    def test_flush_closes_everything(self):
        """Round end closes every open window."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        detector.open_window("ct2", Side.CT, "t2", tick=1100)
        assert len(detector.flush()) == 2
        assert detector.open_windows() == []


class TestMatchKill:
    """Tests for matching avenging kills to open windows."""

    def test_teammate_kill_trades_death(self):
        """A teammate killing an enemy inside the window is a trade."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        match = detector.match_kill("t2", Side.T, Side.CT, tick=1100)
        assert match is not None
        assert match.window.victim_id == "t1"
        assert match.delta_ticks == 100
        assert match.fast

    def test_slow_trade_is_not_fast(self):
        """Inside the window but beyond 2 seconds."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        match = detector.match_kill("t2", Side.T, Side.CT, tick=1200)
        assert match is not None
        assert not match.fast

    def test_kill_after_window_is_not_trade(self):
        """An expired death cannot be traded."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        assert detector.match_kill("t2", Side.T, Side.CT, tick=1400) is None

    def test_enemy_kill_does_not_trade(self):
        """A kill by the other side never trades a T death."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        assert detector.match_kill("ct1", Side.CT, Side.T, tick=1100) is None

    def test_team_kill_does_not_trade(self):
        """The victim must be an enemy of the dead player."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        assert detector.match_kill("t2", Side.T, Side.T, tick=1100) is None

    def test_death_traded_only_once(self):
        """A matched window closes; the next kill finds nothing."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        assert detector.match_kill("t2", Side.T, Side.CT, tick=1050) is not None
        assert detector.match_kill("t3", Side.T, Side.CT, tick=1060) is None

    def test_oldest_window_matched_first(self):
        """One kill trades the oldest qualifying death only."""
        detector = _detector()
        detector.open_window("t1", Side.T, "ct1", tick=1000)
        detector.open_window("t2", Side.T, "ct2", tick=1050)
        match = detector.match_kill("t3", Side.T, Side.CT, tick=1100)
        assert match.window.victim_id == "t1"
        assert [w.victim_id for w in detector.open_windows(Side.T)] == ["t2"]


class TestProximity:
    """Tests for the optional distance requirement."""

    def test_far_teammate_cannot_trade(self):
        """Known positions beyond the proximity radius disqualify the trade."""
        detector = _detector()
        detector.open_window(
            "t1",
            Side.T,
            "ct1",
            tick=1000,
            position=Position(0, 0, 0),
            teammate_positions={"t2": Position(3000, 0, 0)},
        )
        assert detector.match_kill("t2", Side.T, Side.CT, tick=1100) is None

    def test_near_teammate_trades(self):
        """Within 1200 units the trade counts."""
        detector = _detector()
        detector.open_window(
            "t1",
            Side.T,
            "ct1",
            tick=1000,
            position=Position(0, 0, 0),
            teammate_positions={"t2": Position(600, 800, 0)},
        )
        assert detector.match_kill("t2", Side.T, Side.CT, tick=1100) is not None

    def test_unknown_position_skips_check(self):
        """Without the trader's position only the time window applies."""
        detector = _detector()
        detector.open_window(
            "t1",
            Side.T,
            "ct1",
            tick=1000,
            position=Position(0, 0, 0),
            teammate_positions={"t2": Position(5000, 0, 0)},
        )
        assert detector.match_kill("t3", Side.T, Side.CT, tick=1100) is not None
