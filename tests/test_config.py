"""
Tests for configuration loading, environment overrides and saving.
"""

import dataclasses
import json
import logging
import os

import pytest
import yaml

from ecorating.core.config import (
    EngineConfig,
    LoggingConfig,
    ResponseCurve,
    dict_to_config,
    generate_default_config,
    load_config,
    load_config_file,
    save_config,
    setup_logging,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep ECORATING_* variables from the outer environment out of the tests."""
    for key in list(os.environ):
        if key.startswith("ECORATING_"):
            monkeypatch.delenv(key)


class TestDefaults:
    """Tests for default values."""

    def test_trade_ticks(self):
        config = EngineConfig()
        assert config.trade.window_ticks(config.match.tick_rate) == 320
        assert config.trade.fast_trade_ticks(config.match.tick_rate) == 128

    def test_rating_bounds(self):
        config = EngineConfig()
        assert config.rating.min_rating == 0.20
        assert config.rating.max_rating == 3.00

    def test_config_is_immutable(self):
        config = EngineConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.swing.multiplier = 5.0


class TestLoading:
    """Tests for file loading."""

    def test_yaml_overrides(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "trade": {"window_seconds": 4},
                    "swing": {"multiplier": 2.0},
                    "rating": {"kill_value": {"baseline": 0.8}},
                }
            )
        )
        config = load_config(path)
        assert config.trade.window_seconds == 4.0
        assert isinstance(config.trade.window_seconds, float)
        assert config.swing.multiplier == 2.0
        assert config.rating.kill_value == ResponseCurve(0.8, 0.75, 0.55)
        # Untouched sections keep their defaults
        assert config.economy == EngineConfig().economy

    def test_unknown_keys_ignored(self, tmp_path, caplog):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"trade": {"no_such_key": 1}, "mystery": {"a": 1}}))
        with caplog.at_level(logging.WARNING):
            config = load_config(path)
        assert config == EngineConfig()
        assert "no_such_key" in caplog.text

    def test_economy_tiers_sorted(self):
        config = dict_to_config({"economy": {"tiers": [[0.0, 0.5, 0.5], [3.0, 2.0, 1.8]]}})
        assert [t.min_ratio for t in config.economy.tiers] == [3.0, 0.0]

    def test_toml_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text('[match]\ntick_rate = 128\n\n[logging]\nlevel = "DEBUG"\n')
        config = load_config(path)
        assert config.match.tick_rate == 128
        assert config.logging.level == "DEBUG"

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"rating": {"multi_kill_points": [0, 0, 1, 2, 3, 4]}}))
        config = load_config(path)
        assert config.rating.multi_kill_points == (0, 0, 1, 2, 3, 4)

    def test_missing_file_is_empty(self, tmp_path):
        assert load_config_file(tmp_path / "absent.yaml") == {}


class TestEnvironment:
    """Tests for ECORATING_* environment overrides."""

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("ECORATING_SWING_MULTIPLIER", "3")
        monkeypatch.setenv("ECORATING_LOG_LEVEL", "WARNING")
        config = load_config()
        assert config.swing.multiplier == 3.0
        assert config.logging.level == "WARNING"

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"trade": {"proximity_units": 800}}))
        monkeypatch.setenv("ECORATING_TRADE_PROXIMITY", "1500.5")
        assert load_config(path).trade.proximity_units == 1500.5

    def test_env_can_be_disabled(self, monkeypatch):
        monkeypatch.setenv("ECORATING_TICK_RATE", "128")
        assert load_config(include_env=False).match.tick_rate == 64


class TestSaving:
    """Tests for writing configuration files."""

    def test_default_config_reloads_identically(self, tmp_path):
        path = tmp_path / "ecorating.yaml"
        generate_default_config(path)
        assert load_config(path, include_env=False) == EngineConfig()

    def test_save_json(self, tmp_path):
        path = tmp_path / "out.json"
        save_config(EngineConfig(), path)
        data = json.loads(path.read_text())
        assert data["swing"]["multiplier"] == 2.5
        assert data["economy"]["tiers"][0]["kill_multiplier"] == 1.80

    def test_unknown_format_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            save_config(EngineConfig(), tmp_path / "config.ini")


class TestLogging:
    """Tests for logging setup."""

    def test_setup_logging_level_and_file(self, tmp_path):
        root = logging.getLogger()
        old_level, old_handlers = root.level, list(root.handlers)
        log_file = tmp_path / "ecorating.log"
        try:
            setup_logging(LoggingConfig(level="debug", file=str(log_file)))
            assert root.level == logging.DEBUG
            logging.getLogger("ecorating.test").debug("hello")
            for handler in root.handlers:
                handler.flush()
            assert "hello" in log_file.read_text()
        finally:
            for handler in list(root.handlers):
                if handler not in old_handlers:
                    handler.close()
                    root.removeHandler(handler)
            root.setLevel(old_level)
