"""
Unit Tests for Settings
=======================

Tests for environment-driven configuration.
"""

import pytest
from pydantic import ValidationError

from html2image_mcp.config.settings import Settings


pytestmark = pytest.mark.unit


class TestSettings:
    """Test settings parsing."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        monkeypatch.delenv("HTML2IMAGE_PORT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.port == 3000
        assert settings.transports == ["stdio", "http"]
        assert settings.images_url_prefix == "/images"
        assert settings.max_wait_ms == 60000

    def test_port_from_env(self, monkeypatch):
        monkeypatch.delenv("HTML2IMAGE_PORT", raising=False)
        monkeypatch.setenv("PORT", "8123")
        assert Settings(_env_file=None).port == 8123

    def test_comma_separated_lists(self, monkeypatch):
        monkeypatch.setenv("HTML2IMAGE_TRANSPORTS", "stdio")
        monkeypatch.setenv("HTML2IMAGE_ALLOWED_HOSTS", "http://a.test, http://b.test")

        settings = Settings(_env_file=None)

        assert settings.transports == ["stdio"]
        assert settings.allowed_hosts == ["http://a.test", "http://b.test"]

    def test_unknown_transport(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, transports=["websocket"])

    def test_max_wait_capped(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, max_wait_ms=60001)

    def test_log_level_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_environment(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, environment="staging")
