"""
Unit tests for YAML configuration loading.
"""

import pytest

from config import (
    FundingArbitrageConfig, load_config, parse_config, substitute_env_vars, resolve_config_path
)
from config import config_manager
from funding_arbitrage.structs import VenueId
from funding_arbitrage.venues import VenueRegistry
from infrastructure.exceptions import ConfigurationError
from infrastructure.logging.structs import LoggingConfig

CONFIG_YAML = """
environment: test
rate_arbitrage:
  min_rate_divergence: 0.002
  max_lead_minutes: 20
allocator:
  notional_per_leg: ${FA_TEST_NOTIONAL:250}
venue_fees:
  mexc:
    maker_rate: 0.0
    taker_rate: 0.0002
logging:
  environment: test
  console:
    min_level: WARNING
    color: false
"""


@pytest.fixture
def isolated_paths(tmp_path, monkeypatch):
    """Search only tmp_path for config.yaml / .env."""
    monkeypatch.setattr(config_manager, "guess_file_paths", lambda name: [tmp_path / name])
    monkeypatch.delenv(config_manager.CONFIG_ENV_VAR, raising=False)
    return tmp_path


class TestParseConfig:

    def test_defaults(self):
        config = parse_config({})

        assert config == FundingArbitrageConfig()
        assert config.rate_arbitrage.min_rate_divergence == 0.0015
        assert config.rate_arbitrage.max_payout_skew_minutes == 5
        assert config.timing_arbitrage.min_payout_skew_minutes == 30
        assert config.timing_arbitrage.min_abs_rate == 0.002
        assert config.allocator.notional_per_leg == 1000
        assert config.monitoring.stability_threshold_percent == 10
        assert config.monitoring.lead_ms == 60_000
        assert config.engine.analysis_interval_seconds == 120
        assert config.engine.statistics_interval_seconds == 600
        assert config.logging is None

    def test_partial_sections_keep_defaults(self):
        config = parse_config({"timing_arbitrage": {"min_abs_rate": 0.003}})
        assert config.timing_arbitrage.min_abs_rate == 0.003
        assert config.timing_arbitrage.min_lead_minutes == 4

    def test_numeric_strings_are_accepted(self):
        assert parse_config({"allocator": {"notional_per_leg": "500"}}).allocator.notional_per_leg == 500

    @pytest.mark.parametrize("data", [
        {"environment": "staging"},
        {"allocator": {"notional_per_leg": 0}},
        {"allocator": {"notional_per_leg": "lots"}},
        {"rate_arbitrage": {"min_lead_minutes": 20, "max_lead_minutes": 15}},
        {"monitoring": {"history_cap": 0}},
        {"provider": {"url": "ftp://example.com"}},
        {"venue_fees": {"mexc": {"maker_rate": 0.0}}},
        ["not", "a", "mapping"],
    ])
    def test_invalid(self, data):
        with pytest.raises(ConfigurationError):
            parse_config(data)


class TestSubstitution:

    def test_default_value(self, monkeypatch):
        monkeypatch.delenv("FA_TEST_VAR", raising=False)
        assert substitute_env_vars("a: ${FA_TEST_VAR:42}") == "a: 42"

    def test_environment_wins(self, monkeypatch):
        monkeypatch.setenv("FA_TEST_VAR", "7")
        assert substitute_env_vars("a: ${FA_TEST_VAR:42}") == "a: 7"

    def test_required_variable(self, monkeypatch):
        monkeypatch.delenv("FA_TEST_VAR", raising=False)
        with pytest.raises(ConfigurationError) as exc_info:
            substitute_env_vars("a: ${FA_TEST_VAR}")
        assert exc_info.value.setting_name == "FA_TEST_VAR"


class TestLoadConfig:

    def test_missing_file_uses_defaults(self, isolated_paths):
        assert resolve_config_path() is None
        assert load_config() == FundingArbitrageConfig()

    def test_load_yaml(self, isolated_paths, monkeypatch):
        monkeypatch.delenv("FA_TEST_NOTIONAL", raising=False)
        (isolated_paths / "config.yaml").write_text(CONFIG_YAML)

        config = load_config()

        assert config.environment == "test"
        assert config.rate_arbitrage.min_rate_divergence == 0.002
        assert config.rate_arbitrage.max_lead_minutes == 20
        assert config.rate_arbitrage.min_lead_minutes == 3
        assert config.allocator.notional_per_leg == 250
        assert isinstance(config.logging, LoggingConfig)
        assert config.logging.console.min_level == "WARNING"
        assert VenueRegistry.from_overrides(config.venue_fees).has_fee(VenueId.MEXC)

    def test_env_file(self, isolated_paths, monkeypatch):
        # register for restore, then clear so the .env value is used
        monkeypatch.setenv("FA_TEST_NOTIONAL", "placeholder")
        monkeypatch.delenv("FA_TEST_NOTIONAL")
        (isolated_paths / ".env").write_text("FA_TEST_NOTIONAL=750\n")
        (isolated_paths / "config.yaml").write_text(CONFIG_YAML)

        assert load_config().allocator.notional_per_leg == 750

    def test_explicit_path(self, isolated_paths, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("engine:\n  analysis_interval_seconds: 30\n")
        assert load_config(path).engine.analysis_interval_seconds == 30

    def test_env_var_path(self, isolated_paths, tmp_path, monkeypatch):
        path = tmp_path / "from_env.yaml"
        path.write_text("allocator:\n  notional_per_leg: 123\n")
        monkeypatch.setenv(config_manager.CONFIG_ENV_VAR, str(path))
        assert load_config().allocator.notional_per_leg == 123

    def test_explicit_path_must_exist(self, isolated_paths, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file(self, isolated_paths):
        (isolated_paths / "config.yaml").write_text("")
        assert load_config() == FundingArbitrageConfig()

    def test_broken_yaml(self, isolated_paths):
        (isolated_paths / "config.yaml").write_text("rate_arbitrage: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_config()
