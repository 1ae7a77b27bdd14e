"""Tests for system configuration."""

import pytest

from streamglow.common.exceptions import ConfigurationError, ValidationError
from streamglow.core.config import SystemConfig, SystemDefaults


class TestSystemConfig:
    """Defaults, files and environment overrides"""

    def test_defaults(self):
        config = SystemConfig.create_default()
        assert config.devices.strip_port == 5577
        assert config.effects.strobe_ms == 3000
        assert config.pubsub.reconnect_delay == 3.0
        assert config.pubsub.heartbeat_interval == 60.0
        assert config.api.port == 5000
        assert not config.ledger.enabled

    def test_defaults_listing(self):
        defaults = SystemDefaults.get_all_defaults()
        assert defaults["DEFAULT_STROBE_MS"] == 3000
        assert "DEFAULT_STRIP_HOST" in defaults

    def test_from_yaml(self, config_file):
        config = SystemConfig.from_yaml(config_file)
        assert config.devices.backend == "mock"
        assert config.devices.strip_host == "10.0.0.50"
        assert config.effects.strobe_ms == 1500
        assert config.pubsub.channel_id == "12345"
        # Untouched sections keep defaults
        assert config.telemetry.url == SystemDefaults.DEFAULT_TELEMETRY_URL

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            SystemConfig.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("devices: [unclosed")
        with pytest.raises(ConfigurationError):
            SystemConfig.from_yaml(path)

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigurationError):
            SystemConfig.from_dict({"devices": {"strip_hots": "x"}})
        with pytest.raises(ConfigurationError):
            SystemConfig.from_dict({"lighting": {}})

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            SystemConfig.from_dict({"devices": {"backend": "serial"}})
        with pytest.raises(ValidationError):
            SystemConfig.from_dict({"effects": {"strobe_ms": -1}})
        with pytest.raises(ValidationError):
            SystemConfig.from_dict({"effects": {"default_stream_color": "mauve"}})
        with pytest.raises(ValidationError):
            SystemConfig.from_dict({"effects": {"default_stream_color": "bluestrobe"}})

    def test_env_overrides(self, config_file):
        config = SystemConfig.from_env(
            config_file,
            environ={
                "STREAMGLOW_AUTH_TOKEN": "letmein",
                "STREAMGLOW_LEDGER_URL": "https://ledger.example",
                "STREAMGLOW_CHANNEL_ID": "",
            },
        )
        assert config.api.auth_token == "letmein"
        assert config.ledger.enabled
        assert config.pubsub.channel_id == "12345"

    def test_update_revalidates(self):
        config = SystemConfig.create_default()
        config.update({"api": {"port": 8080}})
        assert config.api.port == 8080
        with pytest.raises(ValidationError):
            config.update({"api": {"port": 0}})
        with pytest.raises(ConfigurationError):
            config.update({"nope": {}})
