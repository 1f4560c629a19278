"""
Probability swing attribution.

The swing of an event is how much it moved the acting side's chance of
winning the round, scaled by a fixed multiplier. Swing lands on the round
accumulator and reaches the match totals when the round is folded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from ecorating.analysis.models import RoundPlayerStats
from ecorating.analysis.win_probability import RoundSnapshot, WinProbability
from ecorating.core.config import SwingConfig
from ecorating.core.constants import SURVIVAL_CREDIT_SHARE, Side

logger = logging.getLogger(__name__)


class SwingAttributor:
    """Turns before/after round snapshots into credited swing."""

    def __init__(
        self,
        model: WinProbability,
        multiplier: float = 2.5,
        survival_credit_share: float = SURVIVAL_CREDIT_SHARE,
    ):
        self.model = model
        self.multiplier = multiplier
        self.survival_credit_share = survival_credit_share

    @classmethod
    def from_config(cls, model: WinProbability, config: SwingConfig) -> SwingAttributor:
        return cls(
            model=model,
            multiplier=config.multiplier,
            survival_credit_share=config.survival_credit_share,
        )

    def delta(self, side: Side, before: RoundSnapshot, after: RoundSnapshot) -> float:
        """Scaled change in ``side``'s win probability between two snapshots."""
        p_before = self.model.probability(before, side)
        p_after = self.model.probability(after, side)
        return (p_after - p_before) * self.multiplier

    def credit(
        self,
        stats: RoundPlayerStats,
        side: Side,
        before: RoundSnapshot,
        after: RoundSnapshot,
    ) -> float:
        """Credit the swing of an event to the acting player and return it."""
        swing = self.delta(side, before, after)
        stats.swing += swing
        return swing

    def survival_credit(self, beneficiaries: Iterable[RoundPlayerStats], swing: float) -> float:
        """
        Give each beneficiary a share of a teammate's kill swing.

        Returns the per-beneficiary amount.
        """
        share = swing * self.survival_credit_share
        for stats in beneficiaries:
            stats.swing += share
            stats.survival_credit += share
            logger.debug(f"Survival credit {share:+.3f} to {stats.player_id}")
        return share
