"""
Statistics accumulators and finalized records.

Mutable accumulators (RoundPlayerStats, SideStats, PlayerStats) are owned by
one MatchStateMachine while a match is being replayed. Everything a round
produces lands in RoundPlayerStats first and is folded into the match-lifetime
PlayerStats exactly once, at round end; an aborted (restarted) round is simply
dropped. Rates exist only on the frozen PlayerRecord built at finalization.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Any

import pandas as pd

from ecorating.core.constants import MAX_HEALTH, MAX_KILLS_TRACKED, Side

# Counters that exist on both the round accumulator and the match accumulator
# and are folded by plain addition.
ADDITIVE_COUNTERS: tuple[str, ...] = (
    "kills",
    "deaths",
    "assists",
    "damage",
    "utility_damage",
    "team_damage",
    "opening_kills",
    "opening_deaths",
    "headshot_kills",
    "awp_kills",
    "knife_kills",
    "pistol_vs_rifle_kills",
    "early_deaths",
    "exit_frags",
    "awp_deaths",
    "awp_deaths_no_kill",
    "team_kills",
    "enemies_flashed",
    "flash_duration",
    "team_flash_count",
    "team_flash_duration",
    "bomb_plants",
    "bomb_defuses",
    "trade_kills",
    "fast_trades",
    "traded_deaths",
    "trade_denials",
    "eco_kill_value",
    "eco_death_value",
    "swing",
    "survival_credit",
)


def _empty_histogram() -> list[int]:
    return [0] * (MAX_KILLS_TRACKED + 1)


def per_round(value: float, rounds: int) -> float:
    """Divide by rounds played, zero when no rounds were played."""
    return value / rounds if rounds > 0 else 0.0


# =============================================================================
# Round accumulator
# =============================================================================


@dataclass
class RoundPlayerStats:
    """One player's contribution to the round in progress."""

    player_id: str
    side: Side

    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage: int = 0
    utility_damage: int = 0
    team_damage: int = 0
    opening_kills: int = 0
    opening_deaths: int = 0
    headshot_kills: int = 0
    awp_kills: int = 0
    knife_kills: int = 0
    pistol_vs_rifle_kills: int = 0
    early_deaths: int = 0
    exit_frags: int = 0
    awp_deaths: int = 0
    awp_deaths_no_kill: int = 0
    team_kills: int = 0
    enemies_flashed: int = 0
    flash_duration: float = 0.0
    team_flash_count: int = 0
    team_flash_duration: float = 0.0
    bomb_plants: int = 0
    bomb_defuses: int = 0
    trade_kills: int = 0
    fast_trades: int = 0
    traded_deaths: int = 0
    trade_denials: int = 0
    eco_kill_value: float = 0.0
    eco_death_value: float = 0.0
    swing: float = 0.0
    survival_credit: float = 0.0

    # Round flags
    alive: bool = True
    health: int = MAX_HEALTH
    equipment_value: float = 0.0
    was_traded: bool = False
    clutch: bool = False
    clutch_opponents: int = 0
    kill_ticks: list[int] = field(default_factory=list)

    @property
    def kast(self) -> bool:
        """Kill, Assist, Survived or Traded."""
        return self.kills > 0 or self.assists > 0 or self.alive or self.was_traded


# =============================================================================
# Match accumulators
# =============================================================================


@dataclass
class SideStats:
    """Match-lifetime stats restricted to a subset of rounds: one side, or the pistol rounds."""

    side: Side | None = None
    rounds_played: int = 0
    rounds_won: int = 0
    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage: int = 0
    kast_rounds: int = 0
    survivals: int = 0
    eco_kill_value: float = 0.0
    eco_death_value: float = 0.0
    swing: float = 0.0
    clutch_rounds: int = 0
    clutch_wins: int = 0
    multi_kills: list[int] = field(default_factory=_empty_histogram)

    def fold(self, round_stats: RoundPlayerStats, won: bool) -> None:
        self.rounds_played += 1
        self.rounds_won += int(won)
        self.kills += round_stats.kills
        self.deaths += round_stats.deaths
        self.assists += round_stats.assists
        self.damage += round_stats.damage
        self.kast_rounds += int(round_stats.kast)
        self.survivals += int(round_stats.alive)
        self.eco_kill_value += round_stats.eco_kill_value
        self.eco_death_value += round_stats.eco_death_value
        self.swing += round_stats.swing
        self.multi_kills[min(round_stats.kills, MAX_KILLS_TRACKED)] += 1
        if round_stats.clutch:
            self.clutch_rounds += 1
            self.clutch_wins += int(won)

    @property
    def multi_kill_rounds(self) -> int:
        return sum(self.multi_kills[2:])


@dataclass
class PlayerStats:
    """Match-lifetime accumulator for one player. Holds no rate fields."""

    player_id: str
    name: str = ""

    rounds_played: int = 0
    rounds_won: int = 0
    kast_rounds: int = 0
    clutch_rounds: int = 0
    clutch_wins: int = 0
    clutch_1v1_rounds: int = 0
    clutch_1v1_wins: int = 0
    saves_on_loss: int = 0
    multi_kills: list[int] = field(default_factory=_empty_histogram)

    kills: int = 0
    deaths: int = 0
    assists: int = 0
    damage: int = 0
    utility_damage: int = 0
    team_damage: int = 0
    opening_kills: int = 0
    opening_deaths: int = 0
    headshot_kills: int = 0
    awp_kills: int = 0
    knife_kills: int = 0
    pistol_vs_rifle_kills: int = 0
    early_deaths: int = 0
    exit_frags: int = 0
    awp_deaths: int = 0
    awp_deaths_no_kill: int = 0
    team_kills: int = 0
    enemies_flashed: int = 0
    flash_duration: float = 0.0
    team_flash_count: int = 0
    team_flash_duration: float = 0.0
    bomb_plants: int = 0
    bomb_defuses: int = 0
    trade_kills: int = 0
    fast_trades: int = 0
    traded_deaths: int = 0
    trade_denials: int = 0
    eco_kill_value: float = 0.0
    eco_death_value: float = 0.0
    swing: float = 0.0
    survival_credit: float = 0.0

    sides: dict[Side, SideStats] = field(
        default_factory=lambda: {side: SideStats(side=side) for side in Side}
    )
    pistol: SideStats = field(default_factory=SideStats)

    def fold(self, round_stats: RoundPlayerStats, won: bool, pistol: bool = False) -> None:
        """Add one finished round. Called exactly once per rostered player per round."""
        for name in ADDITIVE_COUNTERS:
            setattr(self, name, getattr(self, name) + getattr(round_stats, name))

        self.rounds_played += 1
        self.rounds_won += int(won)
        self.kast_rounds += int(round_stats.kast)
        self.multi_kills[min(round_stats.kills, MAX_KILLS_TRACKED)] += 1

        if round_stats.clutch:
            self.clutch_rounds += 1
            self.clutch_wins += int(won)
            if round_stats.clutch_opponents == 1:
                self.clutch_1v1_rounds += 1
                self.clutch_1v1_wins += int(won)

        if round_stats.alive and not won:
            self.saves_on_loss += 1

        self.sides[round_stats.side].fold(round_stats, won)
        if pistol:
            self.pistol.fold(round_stats, won)


# =============================================================================
# Finalized (immutable) output
# =============================================================================


@dataclass(frozen=True)
class RoundRecord:
    """Summary of a completed round."""

    round_num: int
    start_tick: int
    end_tick: int
    winner: Side | None
    reason: str = ""
    pistol_round: bool = False
    bomb_planted: bool = False
    plant_tick: int | None = None
    kills: int = 0
    untraded_deaths: Mapping[Side, int] = field(default_factory=lambda: MappingProxyType({}))
    player_sides: Mapping[str, Side] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict[str, Any]:
        return {
            "round_num": self.round_num,
            "start_tick": self.start_tick,
            "end_tick": self.end_tick,
            "winner": self.winner.value if self.winner else None,
            "reason": self.reason,
            "pistol_round": self.pistol_round,
            "bomb_planted": self.bomb_planted,
            "plant_tick": self.plant_tick,
            "kills": self.kills,
            "untraded_deaths": {side.value: n for side, n in self.untraded_deaths.items()},
            "player_sides": {pid: side.value for pid, side in self.player_sides.items()},
        }


@dataclass(frozen=True)
class PlayerRecord:
    """Finalized per-player statistics and ratings for one match."""

    player_id: str
    name: str
    rounds_played: int
    rounds_won: int

    kills: int
    deaths: int
    assists: int
    damage: int
    utility_damage: int
    opening_kills: int
    opening_deaths: int

    adr: float
    kpr: float
    dpr: float
    apr: float
    kast: float

    eco_kill_value: float
    eco_death_value: float
    swing: float
    swing_per_round: float
    survival_credit: float

    trade_kills: int
    fast_trades: int
    traded_deaths: int
    trade_denials: int

    clutch_rounds: int
    clutch_wins: int
    clutch_1v1_rounds: int
    clutch_1v1_wins: int
    saves_on_loss: int
    multi_kills: tuple[int, ...]

    headshot_kills: int
    awp_kills: int
    knife_kills: int
    pistol_vs_rifle_kills: int
    early_deaths: int
    exit_frags: int
    awp_deaths: int
    awp_deaths_no_kill: int
    team_kills: int
    team_damage: int
    enemies_flashed: int
    flash_duration: float
    team_flash_count: int
    team_flash_duration: float
    bomb_plants: int
    bomb_defuses: int

    pistol_rounds_played: int
    pistol_rounds_won: int
    pistol_kills: int
    pistol_deaths: int
    pistol_damage: int
    pistol_survivals: int
    pistol_multi_kill_rounds: int
    pistol_rating: float

    rating: float
    hltv_rating: float
    side_ratings: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    side_survivals: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def headshot_pct(self) -> float:
        return round(self.headshot_kills / self.kills * 100, 1) if self.kills > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["multi_kills"] = list(self.multi_kills)
        data["side_ratings"] = dict(self.side_ratings)
        data["side_survivals"] = dict(self.side_survivals)
        return data


@dataclass(frozen=True)
class MatchResult:
    """Immutable result of one replayed match."""

    match_id: str
    rounds: tuple[RoundRecord, ...]
    players: Mapping[str, PlayerRecord]

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    def leaderboard(self) -> list[PlayerRecord]:
        """Players ordered by rating, best first."""
        return sorted(self.players.values(), key=lambda p: p.rating, reverse=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_id": self.match_id,
            "total_rounds": self.total_rounds,
            "rounds": [r.to_dict() for r in self.rounds],
            "players": {pid: p.to_dict() for pid, p in self.players.items()},
        }

    def to_dataframe(self) -> pd.DataFrame:
        """One row per player, sorted by rating."""
        columns = [
            "player_id",
            "name",
            "rounds_played",
            "kills",
            "deaths",
            "assists",
            "adr",
            "kast",
            "eco_kill_value",
            "eco_death_value",
            "swing_per_round",
            "trade_kills",
            "clutch_wins",
            "hltv_rating",
            "rating",
        ]
        rows = [{col: getattr(p, col) for col in columns} for p in self.leaderboard()]
        return pd.DataFrame(rows, columns=columns)
