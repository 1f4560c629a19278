"""
Economy Valuation for eco-adjusted kills and deaths

A kill with a pistol against a full-buy rifler is worth more than a rifle
kill on an eco; dying with a rifle to a pistol hurts more than dying to an
equal loadout. Both multipliers are read from one ordered tier table keyed
by the ratio of victim equipment to attacker equipment.
"""

import logging
from dataclasses import dataclass

from ecorating.core.config import EconomyConfig, EconomyTier, MatchConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EcoMultipliers:
    """Per-kill valuation snapshot."""

    kill: float  # Multiplier applied to the killer's eco kill value
    death: float  # Penalty multiplier applied to the victim's eco death value
    ratio: float  # victim equipment / attacker equipment (after flooring)


class EconomyValuator:
    """
    Maps (attacker equipment, victim equipment) to kill and death multipliers.

    Pure: no state besides the configuration, never raises. Ratios beyond
    either end of the tier table clamp to the nearest tier.
    """

    def __init__(self, config: EconomyConfig | None = None):
        self.config = config or EconomyConfig()
        self._tiers: tuple[EconomyTier, ...] = tuple(
            sorted(self.config.tiers, key=lambda t: t.min_ratio, reverse=True)
        )

    def ratio(self, attacker_value: float, victim_value: float) -> float:
        floor = self.config.min_equipment_value
        return max(victim_value, floor) / max(attacker_value, floor)

    def tier_for(self, ratio: float) -> EconomyTier:
        for tier in self._tiers:
            if ratio >= tier.min_ratio:
                return tier
        return self._tiers[-1]

    def evaluate(self, attacker_value: float, victim_value: float) -> EcoMultipliers:
        ratio = self.ratio(attacker_value, victim_value)
        tier = self.tier_for(ratio)
        return EcoMultipliers(
            kill=tier.kill_multiplier,
            death=tier.death_multiplier,
            ratio=ratio,
        )

    def kill_multiplier(self, attacker_value: float, victim_value: float) -> float:
        return self.evaluate(attacker_value, victim_value).kill

    def death_multiplier(self, attacker_value: float, victim_value: float) -> float:
        return self.evaluate(attacker_value, victim_value).death


def is_pistol_round(round_num: int, config: MatchConfig | None = None) -> bool:
    """
    Whether a round opens a half with pistols only.

    Regulation pistol rounds are the first round of each half (1 and 13 in
    MR12). Overtime pistol rounds follow every ``overtime_length`` rounds
    after regulation (25, 31, 37, ...).
    """
    config = config or MatchConfig()
    half = config.rounds_per_half
    regulation = 2 * half
    if round_num in (1, half + 1):
        return True
    return round_num > regulation and (round_num - regulation - 1) % config.overtime_length == 0
