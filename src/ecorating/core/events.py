"""
Typed match events consumed by the rating engine.

These are the input boundary of the engine. Whatever decodes a recording
(demo parser, JSON-lines file, live feed) produces these objects in tick
order. Fields the engine does not use may be left at their defaults.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ecorating.core.constants import Side


@dataclass(frozen=True)
class Position:
    """A world position in game units."""

    x: float
    y: float
    z: float = 0.0

    def distance_to(self, other: Position) -> float:
        """3D Euclidean distance."""
        return math.dist((self.x, self.y, self.z), (other.x, other.y, other.z))


@dataclass(frozen=True)
class RosterEntry:
    """A player's assignment for the round being started."""

    player_id: str
    side: Side
    name: str = ""
    equipment_value: float = 0.0


@dataclass(frozen=True)
class MatchEvent:
    """Base class: every event carries a monotonic tick."""

    tick: int


@dataclass(frozen=True)
class RoundStart(MatchEvent):
    round_num: int | None = None
    # Empty roster means "same players as last round"
    players: tuple[RosterEntry, ...] = ()


@dataclass(frozen=True)
class RoundEnd(MatchEvent):
    winner: Side | None = None  # None = draw
    reason: str = ""


@dataclass(frozen=True)
class Kill(MatchEvent):
    """A player death. ``attacker_id`` is None for world/fall damage deaths."""

    victim_id: str = ""
    attacker_id: str | None = None
    weapon: str = ""
    victim_weapon: str = ""  # Weapon the victim was holding
    attacker_equipment_value: float = 0.0
    victim_equipment_value: float = 0.0
    attacker_side: Side | None = None
    victim_side: Side | None = None
    attacker_position: Position | None = None
    victim_position: Position | None = None
    assister_id: str | None = None
    headshot: bool = False
    attacker_name: str = ""
    victim_name: str = ""


@dataclass(frozen=True)
class PlayerHurt(MatchEvent):
    victim_id: str = ""
    attacker_id: str | None = None
    damage: int = 0
    hitgroup: str = ""
    is_utility_damage: bool = False
    weapon: str = ""


@dataclass(frozen=True)
class BombPlanted(MatchEvent):
    player_id: str | None = None
    site: str = ""


@dataclass(frozen=True)
class BombDefused(MatchEvent):
    player_id: str | None = None


@dataclass(frozen=True)
class FlashExplode(MatchEvent):
    """A flashbang detonation and the players it blinded."""

    thrower_id: str = ""
    affected_player_ids: tuple[str, ...] = ()
    durations: tuple[float, ...] = ()
    # Fallback when a victim's side is not known to the engine
    is_team_flash: bool = False
    thrower_position: Position | None = None

    def blinded(self) -> list[tuple[str, float]]:
        """Pair each affected player with their blind duration."""
        return [
            (player_id, self.durations[i] if i < len(self.durations) else 0.0)
            for i, player_id in enumerate(self.affected_player_ids)
        ]


EVENT_TYPES: dict[str, type[MatchEvent]] = {
    "round_start": RoundStart,
    "round_end": RoundEnd,
    "kill": Kill,
    "player_death": Kill,
    "player_hurt": PlayerHurt,
    "bomb_planted": BombPlanted,
    "bomb_defused": BombDefused,
    "flash_explode": FlashExplode,
    "flashbang_detonate": FlashExplode,
}


@dataclass
class EventCounts:
    """Per-type tally of processed events (for logging)."""

    counts: dict[str, int] = field(default_factory=dict)

    def add(self, event: MatchEvent) -> None:
        name = type(event).__name__
        self.counts[name] = self.counts.get(name, 0) + 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())
