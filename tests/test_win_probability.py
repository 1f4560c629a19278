"""
Tests for the round win-probability model.
"""

import pytest

from ecorating.analysis.win_probability import RoundSnapshot, WinProbabilityModel
from ecorating.core.constants import Side


def _snapshot(
    t_alive=5,
    ct_alive=5,
    t_eq=4000.0,
    ct_eq=4000.0,
    planted=False,
    defused=False,
    time_remaining=60.0,
    bomb_time_remaining=40.0,
) -> RoundSnapshot:
    return RoundSnapshot(
        alive={Side.T: t_alive, Side.CT: ct_alive},
        equipment={Side.T: t_eq * t_alive, Side.CT: ct_eq * ct_alive},
        bomb_planted=planted,
        bomb_defused=defused,
        time_remaining=time_remaining,
        bomb_time_remaining=bomb_time_remaining,
    )


class TestBounds:
    """Terminal states and range."""

    def test_probability_in_range(self):
        """Every evaluation lies in [0, 1]."""
        model = WinProbabilityModel()
        for t in range(1, 6):
            for ct in range(1, 6):
                p = model.probability(_snapshot(t, ct), Side.T)
                assert 0.0 <= p <= 1.0

    def test_sides_are_complementary(self):
        """T and CT probabilities sum to one."""
        model = WinProbabilityModel()
        snap = _snapshot(4, 3, planted=True, bomb_time_remaining=20.0)
        assert model.probability(snap, Side.T) + model.probability(snap, Side.CT) == pytest.approx(
            1.0
        )

    def test_eliminated_side_has_zero(self):
        """No players alive, no chance."""
        model = WinProbabilityModel()
        snap = _snapshot(0, 3)
        assert model.probability(snap, Side.T) == 0.0
        assert model.probability(snap, Side.CT) == 1.0

    def test_defuse_decides_round(self):
        """A defused bomb is a CT win."""
        model = WinProbabilityModel()
        snap = _snapshot(3, 1, planted=True, defused=True)
        assert model.probability(snap, Side.CT) == 1.0
        assert model.probability(snap, Side.T) == 0.0


class TestMonotonicity:
    """All else equal, more advantage means a higher chance."""

    def test_alive_advantage(self):
        """Strictly increasing in own alive count."""
        model = WinProbabilityModel()
        probs = [model.probability(_snapshot(t, 3), Side.T) for t in range(1, 6)]
        assert all(a < b for a, b in zip(probs, probs[1:]))

    def test_opponent_alive_lowers_chance(self):
        """Strictly decreasing in enemy alive count."""
        model = WinProbabilityModel()
        probs = [model.probability(_snapshot(3, ct), Side.T) for ct in range(1, 6)]
        assert all(a > b for a, b in zip(probs, probs[1:]))

    def test_equipment_advantage(self):
        """Strictly increasing in own equipment."""
        model = WinProbabilityModel()
        probs = [
            model.probability(_snapshot(t_eq=value), Side.T) for value in (500, 1500, 3000, 5000)
        ]
        assert all(a < b for a, b in zip(probs, probs[1:]))

    def test_plant_never_lowers_t_chance(self):
        """Planting helps T at any point of the round clock."""
        model = WinProbabilityModel()
        for remaining in (100.0, 60.0, 10.0, 0.0):
            before = model.probability(_snapshot(2, 2, time_remaining=remaining), Side.T)
            after = model.probability(
                _snapshot(2, 2, planted=True, bomb_time_remaining=40.0), Side.T
            )
            assert after >= before

    def test_bomb_timer_favours_t(self):
        """The longer the bomb has been down, the better for T."""
        model = WinProbabilityModel()
        early = model.probability(_snapshot(2, 2, planted=True, bomb_time_remaining=38.0), Side.T)
        late = model.probability(_snapshot(2, 2, planted=True, bomb_time_remaining=5.0), Side.T)
        assert late > early

    def test_clock_pressure_on_t_before_plant(self):
        """Time running down without a plant favours CT."""
        model = WinProbabilityModel()
        early = model.probability(_snapshot(time_remaining=100.0), Side.CT)
        late = model.probability(_snapshot(time_remaining=10.0), Side.CT)
        assert late > early


class TestContinuity:
    """Small changes in equipment or time produce small changes in probability."""

    def test_equipment_change_is_continuous(self):
        model = WinProbabilityModel()
        a = model.probability(_snapshot(t_eq=3000.0), Side.T)
        b = model.probability(_snapshot(t_eq=3001.0), Side.T)
        assert abs(a - b) < 1e-3

    def test_clock_change_is_continuous(self):
        model = WinProbabilityModel()
        a = model.probability(_snapshot(time_remaining=50.0), Side.T)
        b = model.probability(_snapshot(time_remaining=49.9), Side.T)
        assert abs(a - b) < 1e-3
