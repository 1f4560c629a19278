"""
eco-rating Core - Foundation modules shared by every component.

- constants: sides, match phases, timing defaults, weapon groups
- config: immutable engine configuration and logging setup
- events: typed match events (the engine's input boundary)
- event_source: JSON-lines reader producing typed events
- errors: exception taxonomy
"""

from ecorating.core.config import (
    EconomyConfig,
    EconomyTier,
    EngineConfig,
    LoggingConfig,
    MatchConfig,
    RatingWeights,
    ResponseCurve,
    SwingConfig,
    TradeConfig,
    WinProbabilityConfig,
    load_config,
    setup_logging,
)
from ecorating.core.constants import MatchPhase, Side
from ecorating.core.errors import (
    EcoRatingError,
    EngineStateError,
    EventOrderError,
    MalformedEventError,
    MatchProcessingError,
)
from ecorating.core.events import (
    BombDefused,
    BombPlanted,
    FlashExplode,
    Kill,
    MatchEvent,
    PlayerHurt,
    Position,
    RosterEntry,
    RoundEnd,
    RoundStart,
)

__all__ = [
    # Enums
    "MatchPhase",
    "Side",
    # Config
    "EconomyConfig",
    "EconomyTier",
    "EngineConfig",
    "LoggingConfig",
    "MatchConfig",
    "RatingWeights",
    "ResponseCurve",
    "SwingConfig",
    "TradeConfig",
    "WinProbabilityConfig",
    "load_config",
    "setup_logging",
    # Errors
    "EcoRatingError",
    "EngineStateError",
    "EventOrderError",
    "MalformedEventError",
    "MatchProcessingError",
    # Events
    "BombDefused",
    "BombPlanted",
    "FlashExplode",
    "Kill",
    "MatchEvent",
    "PlayerHurt",
    "Position",
    "RosterEntry",
    "RoundEnd",
    "RoundStart",
]
