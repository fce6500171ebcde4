"""
Unit tests for configuration models.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from flightrelay.config import get_config, reset_config
from flightrelay.config.models import AppConfig, LoggingConfig, RelayConfig, ServerConfig


def test_server_config_defaults():
    """Test ServerConfig defaults when nothing is set."""
    with patch.dict(os.environ, {}, clear=True):
        config = ServerConfig()
        assert config.host == "0.0.0.0"
        assert config.port == 3000


def test_server_config_reads_platform_port():
    """Test the hosting platform's PORT variable is honoured."""
    with patch.dict(os.environ, {"PORT": "10000"}, clear=True):
        assert ServerConfig().port == 10000


def test_server_config_prefers_server_port():
    """Test SERVER_PORT wins over PORT."""
    with patch.dict(os.environ, {"PORT": "10000", "SERVER_PORT": "4000"}, clear=True):
        assert ServerConfig().port == 4000


def test_server_config_validate_port_invalid():
    """Test ServerConfig rejects out-of-range ports."""
    with patch.dict(os.environ, {"SERVER_PORT": "70000"}, clear=True):
        with pytest.raises(ValidationError, match="Port must be between 1 and 65535"):
            ServerConfig()


def test_relay_config_defaults():
    """Test RelayConfig defaults match the liveness schedule."""
    with patch.dict(os.environ, {}, clear=True):
        config = RelayConfig()
        assert config.sweep_interval == 10.0
        assert config.stale_timeout == 30.0
        assert config.max_message_size == 64 * 1024
        assert config.send_queue_size == 256


def test_relay_config_from_env():
    """Test relay settings can be overridden through the environment."""
    with patch.dict(os.environ, {"RELAY_SWEEP_INTERVAL": "5", "RELAY_STALE_TIMEOUT": "15"}, clear=True):
        config = RelayConfig()
        assert config.sweep_interval == 5.0
        assert config.stale_timeout == 15.0


def test_relay_config_rejects_non_positive():
    """Test non-positive values are rejected."""
    with pytest.raises(ValidationError, match="Value must be positive"):
        RelayConfig(send_queue_size=0)


def test_relay_config_timeout_must_exceed_interval():
    """Test a timeout not longer than the sweep interval is rejected."""
    with pytest.raises(ValidationError, match="stale_timeout must be greater than sweep_interval"):
        RelayConfig(sweep_interval=30.0, stale_timeout=30.0)


def test_logging_config_normalizes_level():
    """Test the log level is upper-cased."""
    assert LoggingConfig(level="debug").level == "DEBUG"


@pytest.mark.parametrize(
    "kwargs",
    [{"environment": "staging"}, {"level": "LOUD"}, {"format": "xml"}],
)
def test_logging_config_rejects_invalid_values(kwargs):
    """Test invalid logging settings are rejected."""
    with pytest.raises(ValidationError):
        LoggingConfig(**kwargs)


def test_app_config_legacy_dict():
    """Test the flattened dict carries every section."""
    with patch.dict(os.environ, {"SERVER_PORT": "4321", "LOGGING_FORMAT": "json"}, clear=True):
        legacy = AppConfig().to_legacy_dict()

    assert legacy["port"] == 4321
    assert legacy["relay"]["stale_timeout"] == 30.0
    assert legacy["logging"]["format"] == "json"


def test_get_config_is_fresh_in_tests():
    """Test get_config rebuilds from the environment under pytest."""
    with patch.dict(os.environ, {"SERVER_PORT": "5001"}, clear=False):
        assert get_config().server.port == 5001
    with patch.dict(os.environ, {"SERVER_PORT": "5002"}, clear=False):
        assert get_config().server.port == 5002
    reset_config()
