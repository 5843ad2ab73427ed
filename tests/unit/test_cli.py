"""
Unit tests for command-line parsing.
"""

import pytest

from userapi.__main__ import build_parser, config_from_args, main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("APP_ENV", "USERAPI_HOST", "USERAPI_DATA_DIR", "USERAPI_CERT_FILE",
                 "USERAPI_KEY_FILE", "USERAPI_LOG_LEVEL", "USERAPI_WORKERS"):
        monkeypatch.delenv(name, raising=False)


def parse(*argv):
    return config_from_args(build_parser().parse_args(list(argv)))


class TestConfigFromArgs:

    def test_defaults(self):
        config = parse()

        assert config.env_name == "staging"
        assert config.http_port == 3000
        assert config.https_port == 3001

    def test_env_flag(self):
        config = parse("--env", "production")

        assert config.env_name == "production"
        assert config.http_port == 5000
        assert config.hashing_secret == "thisIsAProductionSecret"

    def test_env_flag_beats_app_env(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "production")

        assert parse("--env", "staging").http_port == 3000

    def test_environment_variable_kept(self, monkeypatch):
        monkeypatch.setenv("USERAPI_DATA_DIR", "/srv/data")

        assert parse("--env", "production").data_dir == "/srv/data"

    def test_overrides(self):
        config = parse(
            "--host", "0.0.0.0",
            "--port", "8000",
            "--https-port", "8443",
            "--cert", "cert.pem",
            "--key", "key.pem",
            "--data-dir", "/tmp/data",
            "--workers", "2",
            "--log-level", "debug",
            "--log-format", "json",
        )

        assert config.host == "0.0.0.0"
        assert config.http_port == 8000
        assert config.https_port == 8443
        assert config.tls_enabled
        assert config.data_dir == "/tmp/data"
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"


class TestMain:

    def test_invalid_config_exit_code(self, capsys):
        assert main(["--cert", "cert.pem"]) == 1
        assert "invalid configuration" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "userapi 1.0.0" in capsys.readouterr().out
