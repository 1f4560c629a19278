"""
eco-rating Analysis - Win probability, swing and rating.

- win_probability: logistic round win-probability model
- swing: before/after probability deltas credited to players
- models: round/match accumulators and finalized records
- rating: composite rating and HLTV 1.0 comparison rating
"""

from ecorating.analysis.models import (
    MatchResult,
    PlayerRecord,
    PlayerStats,
    RoundPlayerStats,
    RoundRecord,
    SideStats,
)
from ecorating.analysis.rating import (
    DerivedRates,
    RatingBreakdown,
    RatingComposer,
    RatingInputs,
    derive_rates,
)
from ecorating.analysis.swing import SwingAttributor
from ecorating.analysis.win_probability import RoundSnapshot, WinProbability, WinProbabilityModel

__all__: list[str] = [
    "DerivedRates",
    "MatchResult",
    "PlayerRecord",
    "PlayerStats",
    "RatingBreakdown",
    "RatingComposer",
    "RatingInputs",
    "RoundPlayerStats",
    "RoundRecord",
    "RoundSnapshot",
    "SideStats",
    "SwingAttributor",
    "WinProbability",
    "WinProbabilityModel",
    "derive_rates",
]
