"""
Configuration Management for eco-rating

Every tunable number of the engine lives here as an immutable (frozen)
dataclass. A single EngineConfig is built once and handed to the state
machine and the rating composer; nothing in the engine reads global state.

Configuration precedence (highest to lowest):
1. Environment variables (ECORATING_*)
2. Configuration file (YAML, TOML, JSON)
3. Default values
"""

from __future__ import annotations

import json
import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field, fields, is_dataclass, replace
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import yaml

from ecorating.core.constants import (
    BOMB_TIMER_SECONDS,
    CS2_TICK_RATE,
    EARLY_DEATH_SECONDS,
    EXIT_FRAG_SECONDS,
    FAST_TRADE_SECONDS,
    FLASH_MIN_DURATION,
    MAX_HEALTH,
    OVERTIME_LENGTH,
    ROUND_TIME_SECONDS,
    ROUNDS_PER_HALF,
    SURVIVAL_CREDIT_SHARE,
    TRADE_PROXIMITY_UNITS,
    TRADE_WINDOW_SECONDS,
    ticks_for_seconds,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration Dataclasses
# ============================================================================


@dataclass(frozen=True)
class EconomyTier:
    """One row of the equipment ratio table (victim value / attacker value)."""

    min_ratio: float
    kill_multiplier: float
    death_multiplier: float


DEFAULT_ECONOMY_TIERS: tuple[EconomyTier, ...] = (
    EconomyTier(4.0, 1.80, 1.60),  # Pistol killing rifle
    EconomyTier(2.5, 1.50, 1.40),  # Eco killing force/full buy
    EconomyTier(1.6, 1.25, 1.20),  # Force killing full buy
    EconomyTier(1.2, 1.10, 1.10),  # Slight disadvantage
    EconomyTier(0.8, 1.00, 1.00),  # Equal
    EconomyTier(0.6, 0.95, 0.95),  # Slight advantage
    EconomyTier(0.25, 0.85, 0.85),  # Clear advantage
    EconomyTier(0.0, 0.70, 0.70),  # Rifle killing pistol
)


@dataclass(frozen=True)
class EconomyConfig:
    """Eco-adjusted kill/death valuation."""

    # Floor applied to both equipment values before taking the ratio
    min_equipment_value: float = 100.0
    # Ordered by descending min_ratio
    tiers: tuple[EconomyTier, ...] = DEFAULT_ECONOMY_TIERS


@dataclass(frozen=True)
class TradeConfig:
    """Trade window and proximity."""

    window_seconds: float = TRADE_WINDOW_SECONDS
    fast_trade_seconds: float = FAST_TRADE_SECONDS
    proximity_units: float = TRADE_PROXIMITY_UNITS

    def window_ticks(self, tick_rate: int) -> int:
        return ticks_for_seconds(self.window_seconds, tick_rate)

    def fast_trade_ticks(self, tick_rate: int) -> int:
        return ticks_for_seconds(self.fast_trade_seconds, tick_rate)


@dataclass(frozen=True)
class WinProbabilityConfig:
    """Coefficients of the logistic round win-probability model."""

    alive_weight: float = 0.55
    equipment_weight: float = 1.0
    # Added to both sides' equipment when computing the balance
    equipment_floor: float = 1000.0
    bomb_weight: float = 1.2
    # Pressure on the side that must plant as the round clock runs down
    time_weight: float = 1.0


@dataclass(frozen=True)
class SwingConfig:
    """Probability swing attribution."""

    multiplier: float = 2.5
    survival_credit_share: float = SURVIVAL_CREDIT_SHARE
    # Charge the victim's side delta to the victim on every death
    attribute_deaths: bool = True


@dataclass(frozen=True)
class ResponseCurve:
    """
    Asymmetric linear response around a baseline.

    ``reward`` is the slope applied when the player is better than the
    baseline, ``penalty`` the slope when worse. For lower-is-better stats
    (deaths) set ``higher_is_better`` to False.
    """

    baseline: float
    reward: float
    penalty: float
    higher_is_better: bool = True

    def contribution(self, value: float) -> float:
        delta = value - self.baseline if self.higher_is_better else self.baseline - value
        return delta * (self.reward if delta >= 0 else self.penalty)


@dataclass(frozen=True)
class RatingWeights:
    """Weights of the composite rating. Subject to recalibration."""

    base_rating: float = 1.0
    min_rating: float = 0.20
    max_rating: float = 3.00

    kill_value: ResponseCurve = ResponseCurve(0.70, 0.75, 0.55)
    death_value: ResponseCurve = ResponseCurve(0.70, 0.15, 0.55, higher_is_better=False)
    damage: ResponseCurve = ResponseCurve(75.0, 0.015, 0.004)
    kast: ResponseCurve = ResponseCurve(0.70, 0.20, 0.35)
    swing: ResponseCurve = ResponseCurve(0.0, 0.75, 1.00)

    # Impact: opening duels and multi-kill rounds (per round)
    opening_kill_weight: float = 0.30
    opening_death_weight: float = 0.10
    multi_kill_round_weight: float = 0.15

    # Multi-kill bonus: points for 0k..5k rounds, scaled per round
    multi_kill_points: tuple[int, ...] = (0, 0, 2, 6, 14, 30)
    multi_kill_weight: float = 0.015

    # Trade efficiency (per round)
    trade_kill_weight: float = 0.10
    fast_trade_weight: float = 0.05
    traded_death_weight: float = 0.05
    trade_denial_weight: float = 0.05

    # Utility (per round)
    utility_damage_weight: float = 0.002
    enemy_flash_weight: float = 0.02
    team_flash_weight: float = 0.03

    # Clutch: share of clutch rounds x (win rate - baseline win rate)
    clutch_baseline_win_rate: float = 0.30
    clutch_weight: float = 0.50

    # HLTV 1.0 comparison rating
    hltv_baseline_kpr: float = 0.679
    hltv_baseline_spr: float = 0.317
    hltv_baseline_rmk: float = 1.277
    hltv_survival_weight: float = 0.7
    hltv_divisor: float = 2.7


@dataclass(frozen=True)
class MatchConfig:
    """Game timing and round rules."""

    tick_rate: int = CS2_TICK_RATE
    round_time_seconds: float = ROUND_TIME_SECONDS
    bomb_timer_seconds: float = BOMB_TIMER_SECONDS
    early_death_seconds: float = EARLY_DEATH_SECONDS
    flash_min_duration: float = FLASH_MIN_DURATION
    max_health: int = MAX_HEALTH
    rounds_per_half: int = ROUNDS_PER_HALF
    overtime_length: int = OVERTIME_LENGTH
    exit_frag_seconds: float = EXIT_FRAG_SECONDS


@dataclass(frozen=True)
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    file_max_bytes: int = 10 * 1024 * 1024  # 10MB
    file_backup_count: int = 5


@dataclass(frozen=True)
class EngineConfig:
    """Main configuration container."""

    match: MatchConfig = field(default_factory=MatchConfig)
    economy: EconomyConfig = field(default_factory=EconomyConfig)
    trade: TradeConfig = field(default_factory=TradeConfig)
    win_probability: WinProbabilityConfig = field(default_factory=WinProbabilityConfig)
    swing: SwingConfig = field(default_factory=SwingConfig)
    rating: RatingWeights = field(default_factory=RatingWeights)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Version of the config format
    config_version: str = "1.0"


# ============================================================================
# Configuration Loading
# ============================================================================


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a YAML file."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_toml_config(path: Path) -> dict[str, Any]:
    """Load configuration from a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_json_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON file."""
    with open(path) as f:
        return json.load(f)


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file, detecting format from extension."""
    if not path.exists():
        return {}

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return load_yaml_config(path)
    elif suffix == ".toml":
        return load_toml_config(path)
    elif suffix == ".json":
        return load_json_config(path)
    else:
        logger.warning(f"Unknown config file format: {suffix}")
        return {}


ENV_MAPPINGS: dict[str, tuple[str, str]] = {
    "ECORATING_LOG_LEVEL": ("logging", "level"),
    "ECORATING_LOG_FILE": ("logging", "file"),
    "ECORATING_TICK_RATE": ("match", "tick_rate"),
    "ECORATING_TRADE_WINDOW_SECONDS": ("trade", "window_seconds"),
    "ECORATING_TRADE_PROXIMITY": ("trade", "proximity_units"),
    "ECORATING_SWING_MULTIPLIER": ("swing", "multiplier"),
    "ECORATING_SURVIVAL_CREDIT_SHARE": ("swing", "survival_credit_share"),
    "ECORATING_MIN_RATING": ("rating", "min_rating"),
    "ECORATING_MAX_RATING": ("rating", "max_rating"),
}


def load_env_config() -> dict[str, Any]:
    """Load configuration from environment variables."""
    config: dict[str, Any] = {}

    for env_var, (section, key) in ENV_MAPPINGS.items():
        value: Any = os.environ.get(env_var)
        if value is None:
            continue

        # Type conversion
        if value.lower() in ("true", "false"):
            value = value.lower() == "true"
        elif value.isdigit():
            value = int(value)
        else:
            try:
                value = float(value)
            except ValueError:
                pass

        config.setdefault(section, {})[key] = value

    return config


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge two configuration dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value

    return result


def _coerce_tier(value: Any) -> EconomyTier:
    if isinstance(value, EconomyTier):
        return value
    if isinstance(value, dict):
        return EconomyTier(**value)
    min_ratio, kill_multiplier, death_multiplier = value
    return EconomyTier(float(min_ratio), float(kill_multiplier), float(death_multiplier))


def _coerce_field(current: Any, value: Any) -> Any:
    """Convert a raw config value to the type of the field it replaces."""
    if isinstance(current, ResponseCurve) and isinstance(value, dict):
        return replace(current, **value)
    if isinstance(current, tuple):
        if current and isinstance(current[0], EconomyTier):
            tiers = tuple(_coerce_tier(v) for v in value)
            return tuple(sorted(tiers, key=lambda t: t.min_ratio, reverse=True))
        return tuple(value)
    if isinstance(current, float) and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    return value


def _apply_section(section: Any, data: dict[str, Any]) -> Any:
    known = {f.name for f in fields(section)}
    updates = {}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {type(section).__name__}.{key}")
            continue
        updates[key] = _coerce_field(getattr(section, key), value)
    return replace(section, **updates) if updates else section


def dict_to_config(data: dict[str, Any]) -> EngineConfig:
    """Convert a dictionary to an EngineConfig."""
    config = EngineConfig()
    updates: dict[str, Any] = {}

    for f in fields(config):
        section = getattr(config, f.name)
        if f.name in data and is_dataclass(section) and isinstance(data[f.name], dict):
            updates[f.name] = _apply_section(section, data[f.name])

    if "config_version" in data:
        updates["config_version"] = str(data["config_version"])

    return replace(config, **updates)


def load_config(config_file: Path | None = None, include_env: bool = True) -> EngineConfig:
    """
    Load configuration from a file and the environment.

    Args:
        config_file: Path to a config file (optional)
        include_env: Whether to include environment variables

    Returns:
        Merged EngineConfig
    """
    config_data: dict[str, Any] = {}

    if config_file:
        config_data = load_config_file(config_file)
        logger.info(f"Loaded config from: {config_file}")

    if include_env:
        config_data = merge_configs(config_data, load_env_config())

    return dict_to_config(config_data)


# ============================================================================
# Configuration Saving
# ============================================================================


def _plain(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def config_to_dict(config: EngineConfig) -> dict[str, Any]:
    """Convert EngineConfig to a plain dictionary (lists instead of tuples)."""
    return _plain(asdict(config))


def save_config(config: EngineConfig, path: Path) -> None:
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (YAML or JSON, detected from extension)
    """
    data = config_to_dict(config)
    suffix = path.suffix.lower()

    if suffix in (".yaml", ".yml"):
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    elif suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    else:
        raise ValueError(f"Unknown config format: {suffix}")

    logger.info(f"Saved config to: {path}")


def generate_default_config(path: Path) -> None:
    """Write the default configuration to ``path``."""
    save_config(EngineConfig(), path)


# ============================================================================
# Logging
# ============================================================================


def setup_logging(config: LoggingConfig) -> None:
    """Configure the root logger from a LoggingConfig."""
    root = logging.getLogger()
    root.setLevel(config.level.upper())

    formatter = logging.Formatter(config.format)
    if not root.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        root.addHandler(stream)

    if config.file:
        file_handler = RotatingFileHandler(
            config.file,
            maxBytes=config.file_max_bytes,
            backupCount=config.file_backup_count,
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
