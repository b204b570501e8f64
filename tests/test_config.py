"""Tests for configuration loading and validation."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from cocbot.config import Config
from cocbot.exceptions import ConfigError


def _config_with(settings):
    with patch.object(Config, '__init__', lambda self, **kw: None):
        config = Config.__new__(Config)
        config.config_dir = Path("/srv/cocbot/config")
        config.settings = settings
        return config


class TestConfigDefaults:

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for var in ("SIGNAL_API_URL", "SIGNAL_ACCOUNT", "COCBOT_DICTIONARY_PATH"):
            monkeypatch.delenv(var, raising=False)

    def test_prefix_default(self):
        assert _config_with({}).command_prefix == "!coc"

    def test_signal_api_url_default(self):
        assert _config_with({}).signal_api_url == "http://127.0.0.1:8080"

    def test_signal_api_url_env_wins(self, monkeypatch):
        monkeypatch.setenv("SIGNAL_API_URL", "http://signal:9000")
        config = _config_with({"signal_api_url": "http://other:8080"})
        assert config.signal_api_url == "http://signal:9000"

    def test_data_paths_default_next_to_config_dir(self):
        config = _config_with({})
        assert config.dictionary_path == Path("/srv/cocbot/data/dictionary.json")
        assert config.alias_db_path == Path("/srv/cocbot/data/alias.db")

    def test_dictionary_path_env_wins(self, monkeypatch):
        monkeypatch.setenv("COCBOT_DICTIONARY_PATH", "/tmp/terms.json")
        config = _config_with({"dictionary_path": "/elsewhere.json"})
        assert config.dictionary_path == Path("/tmp/terms.json")

    def test_message_and_rate_limits(self):
        config = _config_with({})
        assert config.max_message_length == 2000
        assert config.rate_limit_max_requests == 30
        assert config.rate_limit_window_seconds == 60

    def test_rate_limit_from_settings(self):
        config = _config_with({"rate_limit": {"max_requests": 5, "window_seconds": 10}})
        assert config.rate_limit_max_requests == 5
        assert config.rate_limit_window_seconds == 10

    def test_logging_defaults(self):
        config = _config_with({})
        assert config.logging_level == "INFO"
        assert config.logging_subsystem_levels == {}
        assert config.logging_max_file_size_mb == 10
        assert config.logging_backup_count == 5


class TestConfigFiles:

    def test_loads_settings_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("COCBOT_DICTIONARY_PATH", raising=False)
        (tmp_path / "settings.yaml").write_text(
            "command_prefix: '!mythos'\n"
            "alias_db_path: /var/lib/cocbot/alias.db\n",
            encoding="utf-8",
        )
        config = Config(tmp_path)
        assert config.command_prefix == "!mythos"
        assert config.alias_db_path == Path("/var/lib/cocbot/alias.db")

    def test_missing_settings_is_empty(self, tmp_path):
        assert Config(tmp_path).settings == {}

    def test_env_file_is_loaded(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SIGNAL_ACCOUNT", raising=False)
        (tmp_path / ".env").write_text("SIGNAL_ACCOUNT=+15550009999\n", encoding="utf-8")
        try:
            config = Config(tmp_path)
            assert config.signal_account == "+15550009999"
        finally:
            # load_dotenv writes straight into os.environ
            os.environ.pop("SIGNAL_ACCOUNT", None)


class TestValidate:

    def test_valid_config_passes(self, tmp_path, monkeypatch):
        monkeypatch.delenv("COCBOT_DICTIONARY_PATH", raising=False)
        dictionary = tmp_path / "terms.json"
        dictionary.write_text("{}", encoding="utf-8")
        config = _config_with({"dictionary_path": str(dictionary), "signal_account": "+1555"})
        config.validate()

    @pytest.mark.parametrize("prefix", ["", "!coc bot"])
    def test_bad_prefix_rejected(self, prefix):
        config = _config_with({"command_prefix": prefix})
        with pytest.raises(ConfigError) as exc_info:
            config.validate()
        assert exc_info.value.key == "command_prefix"

    def test_missing_dictionary_rejected(self, tmp_path, monkeypatch):
        monkeypatch.delenv("COCBOT_DICTIONARY_PATH", raising=False)
        config = _config_with({"dictionary_path": str(tmp_path / "missing.json")})
        with pytest.raises(ConfigError, match="dictionary file not found"):
            config.validate()
