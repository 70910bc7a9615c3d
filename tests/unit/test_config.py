"""
Unit tests for ServerConfig.
"""

import socket
import pytest

from rawserver.config import ServerConfig


class TestServerConfig:
    """Tests for defaults, environment loading and validation."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.backlog == 10
        assert config.buffer_size == 30000
        assert config.receive_timeout == 5.0
        assert config.family == socket.AF_INET
        assert config.sock_type == socket.SOCK_STREAM
        assert config.protocol == 0
        config.validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("RAWSERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("RAWSERVER_PORT", "4000")
        monkeypatch.setenv("RAWSERVER_BACKLOG", "3")
        monkeypatch.setenv("RAWSERVER_BUFFER_SIZE", "2048")
        monkeypatch.setenv("RAWSERVER_TIMEOUT", "1.5")
        monkeypatch.setenv("RAWSERVER_LOG_LEVEL", "DEBUG")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.port == 4000
        assert config.backlog == 3
        assert config.buffer_size == 2048
        assert config.receive_timeout == 1.5
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self, monkeypatch):
        for name in ("RAWSERVER_HOST", "RAWSERVER_PORT", "RAWSERVER_BACKLOG",
                     "RAWSERVER_BUFFER_SIZE", "RAWSERVER_TIMEOUT", "RAWSERVER_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        assert ServerConfig.from_env() == ServerConfig()

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"backlog": -1},
        {"buffer_size": 0},
        {"receive_timeout": 0},
        {"log_level": "LOUD"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    def test_no_timeout_allowed(self):
        ServerConfig(receive_timeout=None).validate()
