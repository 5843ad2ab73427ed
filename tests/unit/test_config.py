"""
Unit tests for server configuration.
"""

import pytest

from userapi.config import ServerConfig, Environment


class TestEnvironment:

    @pytest.mark.parametrize("value, expected", [
        ("production", Environment.PRODUCTION),
        ("  PRODUCTION ", Environment.PRODUCTION),
        ("staging", Environment.STAGING),
        ("qa", Environment.STAGING),
        ("", Environment.STAGING),
        (None, Environment.STAGING),
    ])
    def test_parse(self, value, expected):
        assert Environment.parse(value) is expected


class TestPresets:

    def test_staging(self):
        config = ServerConfig.for_environment("staging")

        assert config.env_name == "staging"
        assert config.http_port == 3000
        assert config.https_port == 3001
        assert config.hashing_secret == "thisIsAStagingSecret"

    def test_production(self):
        config = ServerConfig.for_environment("production")

        assert config.env_name == "production"
        assert config.http_port == 5000
        assert config.https_port == 5001
        assert config.hashing_secret == "thisIsAProductionSecret"

    def test_unknown_falls_back(self):
        assert ServerConfig.for_environment("nonsense").env_name == "staging"

    def test_overrides(self):
        config = ServerConfig.for_environment("production", http_port=0, data_dir="/tmp/x")

        assert config.http_port == 0
        assert config.https_port == 5001
        assert config.data_dir == "/tmp/x"


class TestFromEnv:

    def test_defaults(self, monkeypatch):
        for name in ("APP_ENV", "USERAPI_HOST", "USERAPI_DATA_DIR", "USERAPI_CERT_FILE",
                     "USERAPI_KEY_FILE", "USERAPI_LOG_LEVEL", "USERAPI_WORKERS"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig.from_env()

        assert config.env_name == "staging"
        assert config.http_port == 3000
        assert not config.tls_enabled

    def test_variables(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")
        monkeypatch.setenv("USERAPI_HOST", "0.0.0.0")
        monkeypatch.setenv("USERAPI_DATA_DIR", "/var/lib/userapi")
        monkeypatch.setenv("USERAPI_CERT_FILE", "cert.pem")
        monkeypatch.setenv("USERAPI_KEY_FILE", "key.pem")
        monkeypatch.setenv("USERAPI_LOG_LEVEL", "debug")
        monkeypatch.setenv("USERAPI_WORKERS", "2")

        config = ServerConfig.from_env()

        assert config.env_name == "production"
        assert config.http_port == 5000
        assert config.host == "0.0.0.0"
        assert config.data_dir == "/var/lib/userapi"
        assert config.tls_enabled
        assert config.log_level == "DEBUG"
        assert config.max_workers == 2
        assert config.min_workers == 2


class TestValidate:

    def test_defaults_valid(self):
        ServerConfig().validate()

    def test_ephemeral_ports_valid(self):
        ServerConfig(http_port=0, https_port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"http_port": -1},
        {"https_port": 70000},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"max_request_size": 100},
        {"hashing_secret": ""},
        {"data_dir": ""},
        {"cert_file": "cert.pem"},
        {"key_file": "key.pem"},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
        {"http_port": 4000, "https_port": 4000, "cert_file": "c", "key_file": "k"},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_same_ports_without_tls(self):
        ServerConfig(http_port=4000, https_port=4000).validate()
