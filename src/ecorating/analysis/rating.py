"""
Rating Composer

Folds match-lifetime statistics into per-round rates and one bounded
composite rating:

    rating = base
             + kill value + death value + damage + KAST + swing
             + multi-kill bonus + impact + trade efficiency + utility
             + clutch

Baseline-relative components go through an asymmetric ResponseCurve
(one slope above the baseline, another below). Every weight comes from
RatingWeights; the result is clamped to [min_rating, max_rating].

The same formula restricted to the components tracked per side gives the
T and CT ratings. The HLTV 1.0 rating is reported alongside for comparison:

    HLTV 1.0 = (KPR/0.679 + 0.7 * SPR/0.317 + RMK/1.277) / 2.7
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

import numpy as np

from ecorating.analysis.models import PlayerRecord, PlayerStats, SideStats, per_round
from ecorating.core.config import RatingWeights

logger = logging.getLogger(__name__)

# Round-multi-kill weights for HLTV 1.0 (1k..5k)
HLTV_RMK_WEIGHTS = (0, 1, 4, 9, 16, 25)


@dataclass(frozen=True)
class DerivedRates:
    """Per-round rates. All zero when no rounds were played."""

    adr: float = 0.0
    kpr: float = 0.0
    dpr: float = 0.0
    apr: float = 0.0
    kast: float = 0.0
    swing_per_round: float = 0.0


@dataclass(frozen=True)
class RatingInputs:
    """Everything the composer reads, from a player's whole match or one side."""

    rounds: int
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage: int = 0
    kast_rounds: int = 0
    eco_kill_value: float = 0.0
    eco_death_value: float = 0.0
    swing: float = 0.0
    multi_kills: tuple[int, ...] = (0, 0, 0, 0, 0, 0)
    clutch_rounds: int = 0
    clutch_wins: int = 0
    opening_kills: int = 0
    opening_deaths: int = 0
    trade_kills: int = 0
    fast_trades: int = 0
    traded_deaths: int = 0
    trade_denials: int = 0
    utility_damage: int = 0
    flash_duration: float = 0.0
    team_flash_duration: float = 0.0

    @classmethod
    def from_player(cls, stats: PlayerStats) -> RatingInputs:
        return cls(
            rounds=stats.rounds_played,
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            damage=stats.damage,
            kast_rounds=stats.kast_rounds,
            eco_kill_value=stats.eco_kill_value,
            eco_death_value=stats.eco_death_value,
            swing=stats.swing,
            multi_kills=tuple(stats.multi_kills),
            clutch_rounds=stats.clutch_rounds,
            clutch_wins=stats.clutch_wins,
            opening_kills=stats.opening_kills,
            opening_deaths=stats.opening_deaths,
            trade_kills=stats.trade_kills,
            fast_trades=stats.fast_trades,
            traded_deaths=stats.traded_deaths,
            trade_denials=stats.trade_denials,
            utility_damage=stats.utility_damage,
            flash_duration=stats.flash_duration,
            team_flash_duration=stats.team_flash_duration,
        )

    @classmethod
    def from_side(cls, stats: SideStats) -> RatingInputs:
        return cls(
            rounds=stats.rounds_played,
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            damage=stats.damage,
            kast_rounds=stats.kast_rounds,
            eco_kill_value=stats.eco_kill_value,
            eco_death_value=stats.eco_death_value,
            swing=stats.swing,
            multi_kills=tuple(stats.multi_kills),
            clutch_rounds=stats.clutch_rounds,
            clutch_wins=stats.clutch_wins,
        )


@dataclass(frozen=True)
class RatingBreakdown:
    """Component contributions of one composed rating."""

    kill_value: float = 0.0
    death_value: float = 0.0
    damage: float = 0.0
    kast: float = 0.0
    swing: float = 0.0
    multi_kill: float = 0.0
    impact: float = 0.0
    trade: float = 0.0
    utility: float = 0.0
    clutch: float = 0.0
    raw: float = 0.0
    rating: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kill_value": self.kill_value,
            "death_value": self.death_value,
            "damage": self.damage,
            "kast": self.kast,
            "swing": self.swing,
            "multi_kill": self.multi_kill,
            "impact": self.impact,
            "trade": self.trade,
            "utility": self.utility,
            "clutch": self.clutch,
            "raw": self.raw,
            "rating": self.rating,
        }


def derive_rates(
    rounds: int,
    kills: int = 0,
    deaths: int = 0,
    assists: int = 0,
    damage: float = 0,
    kast_rounds: int = 0,
    swing: float = 0.0,
) -> DerivedRates:
    """
    Per-round rates guarded against zero rounds.

    Args:
        rounds: Rounds played
        kills: Total kills
        deaths: Total deaths
        assists: Total assists
        damage: Total damage dealt to enemies
        kast_rounds: Rounds with a kill, assist, survival or trade
        swing: Cumulative swing

    Returns:
        DerivedRates, all zero when ``rounds`` is 0
    """
    if rounds <= 0:
        return DerivedRates()
    return DerivedRates(
        adr=damage / rounds,
        kpr=kills / rounds,
        dpr=deaths / rounds,
        apr=assists / rounds,
        kast=kast_rounds / rounds,
        swing_per_round=swing / rounds,
    )


class RatingComposer:
    """Combines weighted components into the bounded composite rating."""

    def __init__(self, weights: RatingWeights | None = None):
        self.weights = weights or RatingWeights()

    def _clamp(self, value: float) -> float:
        """Bound a raw rating; NaN maps to the floor, infinities to the nearest bound."""
        w = self.weights
        value = np.nan_to_num(value, nan=w.min_rating, posinf=w.max_rating, neginf=w.min_rating)
        return float(np.clip(value, w.min_rating, w.max_rating))

    def _core(self, inputs: RatingInputs) -> dict[str, float]:
        """Components shared by the overall and per-side ratings."""
        w = self.weights
        rounds = inputs.rounds
        rates = derive_rates(
            rounds,
            kills=inputs.kills,
            deaths=inputs.deaths,
            damage=inputs.damage,
            kast_rounds=inputs.kast_rounds,
            swing=inputs.swing,
        )

        points = np.asarray(w.multi_kill_points, dtype=float)
        histogram = np.zeros(len(points))
        n = min(len(points), len(inputs.multi_kills))
        histogram[:n] = inputs.multi_kills[:n]
        multi_kill_points = float(np.dot(points, histogram))

        clutch = 0.0
        if inputs.clutch_rounds > 0:
            win_rate = inputs.clutch_wins / inputs.clutch_rounds
            clutch = (
                per_round(inputs.clutch_rounds, rounds)
                * (win_rate - w.clutch_baseline_win_rate)
                * w.clutch_weight
            )

        return {
            "kill_value": w.kill_value.contribution(per_round(inputs.eco_kill_value, rounds)),
            "death_value": w.death_value.contribution(
                per_round(abs(inputs.eco_death_value), rounds)
            ),
            "damage": w.damage.contribution(rates.adr),
            "kast": w.kast.contribution(rates.kast),
            "swing": w.swing.contribution(rates.swing_per_round),
            "multi_kill": per_round(multi_kill_points, rounds) * w.multi_kill_weight,
            "clutch": clutch,
        }

    def compose(self, inputs: RatingInputs) -> RatingBreakdown:
        """Full composite rating for a player's whole match."""
        w = self.weights
        rounds = inputs.rounds
        if rounds <= 0:
            return RatingBreakdown(rating=w.min_rating)

        components = self._core(inputs)

        multi_kill_rounds = sum(inputs.multi_kills[2:])
        components["impact"] = per_round(
            inputs.opening_kills * w.opening_kill_weight
            - inputs.opening_deaths * w.opening_death_weight
            + multi_kill_rounds * w.multi_kill_round_weight,
            rounds,
        )
        components["trade"] = per_round(
            inputs.trade_kills * w.trade_kill_weight
            + inputs.fast_trades * w.fast_trade_weight
            + inputs.traded_deaths * w.traded_death_weight
            + inputs.trade_denials * w.trade_denial_weight,
            rounds,
        )
        components["utility"] = per_round(
            inputs.utility_damage * w.utility_damage_weight
            + inputs.flash_duration * w.enemy_flash_weight
            - inputs.team_flash_duration * w.team_flash_weight,
            rounds,
        )

        raw = w.base_rating + sum(components.values())
        return RatingBreakdown(**components, raw=raw, rating=round(self._clamp(raw), 3))

    def compose_side(self, inputs: RatingInputs) -> RatingBreakdown:
        """Rating over one side's rounds, using the per-side components only."""
        w = self.weights
        if inputs.rounds <= 0:
            return RatingBreakdown(rating=w.min_rating)

        components = self._core(inputs)
        raw = w.base_rating + sum(components.values())
        return RatingBreakdown(**components, raw=raw, rating=round(self._clamp(raw), 3))

    def hltv_rating(
        self,
        rounds: int,
        kills: int,
        deaths: int,
        multi_kills: tuple[int, ...] | list[int],
    ) -> float:
        """
        HLTV 1.0 rating, reported for comparison only.

        Args:
            rounds: Rounds played
            kills: Total kills
            deaths: Total deaths
            multi_kills: Histogram of rounds by kill count (index 0..5)

        Returns:
            HLTV 1.0 rating, 0.0 when no rounds were played
        """
        if rounds <= 0:
            return 0.0
        w = self.weights

        kpr = kills / rounds
        spr = max(rounds - deaths, 0) / rounds
        n = min(len(HLTV_RMK_WEIGHTS), len(multi_kills))
        rmk = float(np.dot(HLTV_RMK_WEIGHTS[:n], list(multi_kills)[:n])) / rounds

        rating = (
            kpr / w.hltv_baseline_kpr
            + w.hltv_survival_weight * spr / w.hltv_baseline_spr
            + rmk / w.hltv_baseline_rmk
        ) / w.hltv_divisor
        return round(rating, 3)

    def rate_player(self, stats: PlayerStats) -> PlayerRecord:
        """Build the finalized record for one player."""
        rounds = stats.rounds_played
        rates = derive_rates(
            rounds,
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            damage=stats.damage,
            kast_rounds=stats.kast_rounds,
            swing=stats.swing,
        )
        breakdown = self.compose(RatingInputs.from_player(stats))
        side_ratings = {
            side.value: self.compose_side(RatingInputs.from_side(side_stats)).rating
            for side, side_stats in stats.sides.items()
            if side_stats.rounds_played > 0
        }
        pistol = stats.pistol
        pistol_rating = (
            self.compose_side(RatingInputs.from_side(pistol)).rating
            if pistol.rounds_played > 0
            else 0.0
        )

        logger.debug(
            f"Rated {stats.player_id}: {breakdown.rating:.3f} (raw {breakdown.raw:.3f}) "
            f"over {rounds} rounds"
        )

        return PlayerRecord(
            player_id=stats.player_id,
            name=stats.name or stats.player_id,
            rounds_played=rounds,
            rounds_won=stats.rounds_won,
            kills=stats.kills,
            deaths=stats.deaths,
            assists=stats.assists,
            damage=stats.damage,
            utility_damage=stats.utility_damage,
            opening_kills=stats.opening_kills,
            opening_deaths=stats.opening_deaths,
            adr=round(rates.adr, 1),
            kpr=round(rates.kpr, 3),
            dpr=round(rates.dpr, 3),
            apr=round(rates.apr, 3),
            kast=round(rates.kast, 3),
            eco_kill_value=stats.eco_kill_value,
            eco_death_value=stats.eco_death_value,
            swing=stats.swing,
            swing_per_round=rates.swing_per_round,
            survival_credit=stats.survival_credit,
            trade_kills=stats.trade_kills,
            fast_trades=stats.fast_trades,
            traded_deaths=stats.traded_deaths,
            trade_denials=stats.trade_denials,
            clutch_rounds=stats.clutch_rounds,
            clutch_wins=stats.clutch_wins,
            clutch_1v1_rounds=stats.clutch_1v1_rounds,
            clutch_1v1_wins=stats.clutch_1v1_wins,
            saves_on_loss=stats.saves_on_loss,
            multi_kills=tuple(stats.multi_kills),
            headshot_kills=stats.headshot_kills,
            awp_kills=stats.awp_kills,
            knife_kills=stats.knife_kills,
            pistol_vs_rifle_kills=stats.pistol_vs_rifle_kills,
            early_deaths=stats.early_deaths,
            exit_frags=stats.exit_frags,
            awp_deaths=stats.awp_deaths,
            awp_deaths_no_kill=stats.awp_deaths_no_kill,
            team_kills=stats.team_kills,
            team_damage=stats.team_damage,
            enemies_flashed=stats.enemies_flashed,
            flash_duration=stats.flash_duration,
            team_flash_count=stats.team_flash_count,
            team_flash_duration=stats.team_flash_duration,
            bomb_plants=stats.bomb_plants,
            bomb_defuses=stats.bomb_defuses,
            pistol_rounds_played=pistol.rounds_played,
            pistol_rounds_won=pistol.rounds_won,
            pistol_kills=pistol.kills,
            pistol_deaths=pistol.deaths,
            pistol_damage=pistol.damage,
            pistol_survivals=pistol.survivals,
            pistol_multi_kill_rounds=pistol.multi_kill_rounds,
            pistol_rating=pistol_rating,
            rating=breakdown.rating,
            hltv_rating=self.hltv_rating(rounds, stats.kills, stats.deaths, stats.multi_kills),
            side_ratings=MappingProxyType(side_ratings),
            side_survivals=MappingProxyType(
                {side.value: side_stats.survivals for side, side_stats in stats.sides.items()}
            ),
        )
