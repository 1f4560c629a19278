"""
eco-rating Domains - Game-specific trackers.

This module contains:
- economy: eco-adjusted kill/death multipliers, pistol rounds
- advantage: man-advantage slots and survival credit
- trades: trade windows and fast trades
"""

from ecorating.domains.advantage import AdvantageSlot, AdvantageTracker
from ecorating.domains.economy import EcoMultipliers, EconomyValuator, is_pistol_round
from ecorating.domains.trades import TradeDetector, TradeMatch, TradeWindow

__all__: list[str] = [
    "AdvantageSlot",
    "AdvantageTracker",
    "EcoMultipliers",
    "EconomyValuator",
    "TradeDetector",
    "TradeMatch",
    "TradeWindow",
    "is_pistol_round",
]
