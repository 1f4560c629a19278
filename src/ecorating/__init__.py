"""
eco-rating - Contextual-impact rating engine for round-based team shooters

Replays a match event by event and rates every player on what their actions
were worth: win-probability swing, eco-adjusted kills and deaths, trades,
survival credit and clutches, folded into one bounded composite rating.

Usage:
    from ecorating import rate_match, read_events

    result = rate_match(read_events("match.jsonl"), match_id="match")

    for player in result.leaderboard():
        print(f"{player.name}: {player.rating:.2f}")
"""

__version__ = "0.1.0"
__author__ = "eco-rating Contributors"


def __getattr__(name):
    """Lazy import for heavy dependencies."""
    if name == "MatchStateMachine":
        from ecorating.state_machine import MatchStateMachine
        return MatchStateMachine
    elif name == "rate_match":
        from ecorating.state_machine import rate_match
        return rate_match
    elif name == "rate_file":
        from ecorating.state_machine import rate_file
        return rate_file
    elif name == "read_events":
        from ecorating.core.event_source import read_events
        return read_events
    elif name == "EngineConfig":
        from ecorating.core.config import EngineConfig
        return EngineConfig
    elif name == "load_config":
        from ecorating.core.config import load_config
        return load_config
    elif name == "MatchResult":
        from ecorating.analysis.models import MatchResult
        return MatchResult
    elif name == "RatingComposer":
        from ecorating.analysis.rating import RatingComposer
        return RatingComposer
    raise AttributeError(f"module 'ecorating' has no attribute '{name}'")


__all__ = [
    # Version
    "__version__",
    # Engine
    "MatchStateMachine",
    "rate_match",
    "rate_file",
    "read_events",
    # Config
    "EngineConfig",
    "load_config",
    # Output
    "MatchResult",
    "RatingComposer",
]
