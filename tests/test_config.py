"""Unit tests for configuration module."""

import os
from pathlib import Path
from unittest.mock import patch

from dpro_gateway.core.config import Settings, setup_logging


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self):
        """Test settings have sensible defaults."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings()

        assert settings.port == 49280
        assert settings.connect_timeout == 5.0
        assert settings.message_delay == 0.005
        assert settings.keepalive_interval == 10.0
        assert settings.max_deferrals == 1000
        assert settings.reconnect_delay == 5.0
        assert settings.catalog_file is None
        assert settings.catalog_path is None
        assert settings.api_host == "0.0.0.0"
        assert settings.api_port == 8000
        assert settings.log_level == "INFO"

    def test_env_override_host(self):
        """Test device host override from environment."""
        with patch.dict(os.environ, {"DPRO_HOST": "10.0.0.50"}):
            settings = Settings()

        assert settings.host == "10.0.0.50"

    def test_env_override_port(self):
        """Test device port override from environment."""
        with patch.dict(os.environ, {"DPRO_PORT": "49281"}):
            settings = Settings()

        assert settings.port == 49281

    def test_env_override_timing(self):
        """Test timing overrides from environment."""
        with patch.dict(os.environ, {"DPRO_MESSAGE_DELAY": "0.02", "DPRO_KEEPALIVE_INTERVAL": "5"}):
            settings = Settings()

        assert settings.message_delay == 0.02
        assert settings.keepalive_interval == 5.0

    def test_env_override_catalog_file(self):
        """Test parameter table path from environment."""
        with patch.dict(os.environ, {"DPRO_CATALOG_FILE": "/etc/dpro/params.json"}):
            settings = Settings()

        assert settings.catalog_path == Path("/etc/dpro/params.json")

    def test_env_override_api_port(self):
        """Test API port override from environment."""
        with patch.dict(os.environ, {"DPRO_API_PORT": "9000"}):
            settings = Settings()

        assert settings.api_port == 9000

    def test_env_override_log_level(self):
        """Test log level override from environment."""
        with patch.dict(os.environ, {"DPRO_LOG_LEVEL": "DEBUG"}):
            settings = Settings()

        assert settings.log_level == "DEBUG"

    def test_env_prefix(self):
        """Test that non-prefixed env vars are ignored."""
        with patch.dict(os.environ, {"HOST": "10.9.9.9"}, clear=True):
            settings = Settings()

        assert settings.host == "192.168.0.128"


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_info(self):
        """Test setting up INFO logging."""
        setup_logging("INFO")

    def test_setup_logging_case_insensitive(self):
        """Test log level is case insensitive."""
        setup_logging("debug")

    def test_setup_logging_invalid_defaults_to_info(self):
        """Test invalid level defaults to INFO."""
        setup_logging("INVALID")
