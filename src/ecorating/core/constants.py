"""
eco-rating - Constants

Sides, match timing defaults and weapon groupings used by the engine.
"""

from enum import Enum, StrEnum


class Side(StrEnum):
    """The two sides of a round."""

    T = "T"
    CT = "CT"

    @property
    def opponent(self) -> "Side":
        return Side.CT if self is Side.T else Side.T


class MatchPhase(StrEnum):
    """Lifecycle of a match as seen by the state machine."""

    PENDING = "pending"  # Warmup / before the first round start
    ROUND_LIVE = "round_live"
    ROUND_ENDED = "round_ended"
    MATCH_ENDED = "match_ended"


class RoundEndReason(int, Enum):
    """Round end reasons from CS2 (subset relevant to rating)."""

    TARGET_BOMBED = 1
    BOMB_DEFUSED = 7
    CT_WIN = 8
    TERRORIST_WIN = 9
    ROUND_DRAW = 10
    TARGET_SAVED = 12
    TERRORISTS_SURRENDER = 14
    CT_SURRENDER = 15


# CS2 runs 64 tick everywhere (subtick timestamps in between)
CS2_TICK_RATE = 64

# Round clock and C4 timer (seconds)
ROUND_TIME_SECONDS = 115.0
BOMB_TIMER_SECONDS = 40.0

# Trade detection defaults
TRADE_WINDOW_SECONDS = 5.0
FAST_TRADE_SECONDS = 2.0
TRADE_PROXIMITY_UNITS = 1200.0

# Deaths inside this many seconds of the round start count as early deaths
EARLY_DEATH_SECONDS = 30.0

# Flash assist minimum duration (seconds)
FLASH_MIN_DURATION = 0.5

# Starting health for every player at round start
MAX_HEALTH = 100

# Survival credit: share of a teammate's kill swing
SURVIVAL_CREDIT_SHARE = 0.15

# Multi-kill histogram covers 0..5 kills in a round
MAX_KILLS_TRACKED = 5

# MR12: pistol rounds open each half; overtime halves of 3 rounds (MR3)
ROUNDS_PER_HALF = 12
OVERTIME_LENGTH = 6

# Kills this close to the end of a lost round count as exit frags
EXIT_FRAG_SECONDS = 10.0

AWP_WEAPONS = frozenset({"awp"})

KNIFE_WEAPONS = frozenset(
    {
        "knife",
        "knife_t",
        "knife_ct",
        "bayonet",
        "knife_karambit",
        "knife_butterfly",
        "knife_m9_bayonet",
    }
)

PISTOL_WEAPONS = frozenset(
    {
        "glock",
        "usp_silencer",
        "hkp2000",
        "p250",
        "tec9",
        "cz75a",
        "fiveseven",
        "elite",
        "deagle",
        "revolver",
    }
)

# Equipment value of the cheapest full rifle loadout (AK-47 plus armor)
RIFLE_LOADOUT_VALUE = 3700.0


def normalize_weapon(weapon: str | None) -> str:
    """Lower-case a weapon name and strip the ``weapon_`` prefix."""
    if not weapon:
        return ""
    name = weapon.strip().lower().replace("-", "_").replace(" ", "_")
    if name.startswith("weapon_"):
        name = name[len("weapon_") :]
    return name


def ticks_for_seconds(seconds: float, tick_rate: int = CS2_TICK_RATE) -> int:
    """Convert a duration in seconds to a whole number of ticks."""
    return int(round(seconds * tick_rate))
