"""
Unit tests for settings loading and validation.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from passerelle.config.settings import (
    Settings,
    get_settings,
    load_config,
    override_settings,
    reset_settings,
    validate_configuration,
)


class TestLoadConfig:
    def test_test_environment_yaml(self, monkeypatch):
        for name in ("LOG_LEVEL", "REDIS_ENABLED", "CHAIN_WATCHER_ENABLED"):
            monkeypatch.delenv(name, raising=False)

        settings = load_config(env="test")

        assert settings.LOG_LEVEL == "WARNING"
        assert settings.REDIS_ENABLED is False
        assert settings.CHAIN_WATCHER_ENABLED is False
        assert settings.CHAIN_ID == 998
        assert settings.MINIMUM_DEPOSIT_USD == Decimal("5.10")

    def test_environment_variable_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        assert load_config(env="test").LOG_LEVEL == "ERROR"

    def test_global_settings_override(self):
        custom = Settings(APP_NAME="custom")
        try:
            override_settings(custom)
            assert get_settings() is custom
        finally:
            reset_settings()


class TestSettingsValidation:
    def test_log_level_normalized(self):
        assert Settings(LOG_LEVEL="debug").LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(LOG_LEVEL="chatty")

    def test_addresses_lowercased(self):
        settings = Settings(USDC_ADDRESS="0x" + "AB" * 20)

        assert settings.USDC_ADDRESS == "0x" + "ab" * 20

    def test_invalid_address(self):
        with pytest.raises(ValidationError):
            Settings(ASSET_BRIDGE_ADDRESS="0x1234")

    def test_minimum_must_exceed_burn_threshold(self):
        with pytest.raises(ValidationError):
            Settings(MINIMUM_DEPOSIT_USD="5", BURN_THRESHOLD_USD="5")

    def test_rpc_url_scheme(self):
        with pytest.raises(ValidationError):
            Settings(CHAIN_RPC_URL="ws://node:8546")


class TestValidateConfiguration:
    def test_unset_token_reported(self):
        problems = validate_configuration(Settings())

        assert any("USDC_ADDRESS" in p for p in problems)

    def test_configured(self):
        settings = Settings(USDC_ADDRESS="0x" + "11" * 20)

        assert validate_configuration(settings) == []
