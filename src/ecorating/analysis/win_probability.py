"""
Round Win Probability

Estimates the probability that a side wins the round from a snapshot of the
live round state: players alive, equipment still standing, bomb status and
the clock. The same estimator serves every event type; the swing of an event
is the difference between two evaluations of it.

The model is a logistic function of a linear score built from the T side's
point of view; the CT probability is the complement.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from ecorating.core.config import MatchConfig, WinProbabilityConfig
from ecorating.core.constants import Side

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundSnapshot:
    """Live round state at one instant."""

    alive: Mapping[Side, int] = field(default_factory=dict)
    equipment: Mapping[Side, float] = field(default_factory=dict)
    bomb_planted: bool = False
    bomb_defused: bool = False
    time_remaining: float = 0.0  # Round clock (seconds), meaningful before the plant
    bomb_time_remaining: float = 0.0  # C4 timer (seconds), meaningful after the plant

    def alive_for(self, side: Side) -> int:
        return int(self.alive.get(side, 0))

    def equipment_for(self, side: Side) -> float:
        return float(self.equipment.get(side, 0.0))


class WinProbability(Protocol):
    """Anything that can price a round snapshot for one side."""

    def probability(self, snapshot: RoundSnapshot, side: Side) -> float: ...


def _logistic(score: float) -> float:
    return 1.0 / (1.0 + math.exp(-score))


class WinProbabilityModel:
    """
    Logistic win-probability estimator.

    Score (T perspective)::

        alive_weight * (alive_T - alive_CT)
        + equipment_weight * (eq_T - eq_CT) / (eq_T + eq_CT + floor)
        + bomb/time term

    Before the plant the time term is ``-time_weight * elapsed_fraction``
    (T must still plant as the clock runs down). After the plant the bomb
    term is ``bomb_weight * (0.5 + 0.5 * bomb_elapsed_fraction)``, which is
    never negative, so a plant never lowers the T probability.
    """

    def __init__(
        self,
        config: WinProbabilityConfig | None = None,
        match: MatchConfig | None = None,
    ):
        self.config = config or WinProbabilityConfig()
        self.match = match or MatchConfig()

    def _clock_term(self, snapshot: RoundSnapshot) -> float:
        if snapshot.bomb_planted:
            timer = self.match.bomb_timer_seconds
            remaining = min(max(snapshot.bomb_time_remaining, 0.0), timer)
            elapsed = 1.0 - remaining / timer if timer > 0 else 1.0
            return self.config.bomb_weight * (0.5 + 0.5 * elapsed)

        round_time = self.match.round_time_seconds
        remaining = min(max(snapshot.time_remaining, 0.0), round_time)
        elapsed = 1.0 - remaining / round_time if round_time > 0 else 1.0
        return -self.config.time_weight * elapsed

    def score(self, snapshot: RoundSnapshot) -> float:
        """Linear score from the T side's point of view."""
        cfg = self.config
        alive_diff = snapshot.alive_for(Side.T) - snapshot.alive_for(Side.CT)

        eq_t = max(snapshot.equipment_for(Side.T), 0.0)
        eq_ct = max(snapshot.equipment_for(Side.CT), 0.0)
        eq_balance = (eq_t - eq_ct) / (eq_t + eq_ct + cfg.equipment_floor)

        return (
            cfg.alive_weight * alive_diff
            + cfg.equipment_weight * eq_balance
            + self._clock_term(snapshot)
        )

    def probability(self, snapshot: RoundSnapshot, side: Side) -> float:
        """
        Probability in [0, 1] that ``side`` wins the round.

        Args:
            snapshot: Live round state
            side: Side whose chance is requested

        Returns:
            Win probability for ``side``
        """
        if snapshot.bomb_defused:
            return 1.0 if side == Side.CT else 0.0
        if snapshot.alive_for(side) == 0:
            return 0.0
        if snapshot.alive_for(side.opponent) == 0:
            return 1.0

        p_t = _logistic(self.score(snapshot))
        return p_t if side == Side.T else 1.0 - p_t
