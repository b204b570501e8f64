"""Configuration management for cocbot.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a typed Config object. Property getters provide safe access with
defaults for the Signal transport, the command prefix, the dictionary
and alias store locations, rate limiting and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigError

logger = structlog.get_logger("cocbot.bot")


class Config:
    """Central configuration manager for cocbot.

    Loads settings.yaml and .env from the config directory. Read-only
    after __init__, so it is safe to share between handler tasks.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
        return {}

    @property
    def data_dir(self) -> Path:
        """Directory holding the dictionary and the alias database."""
        configured = self.settings.get("data_dir")
        if configured:
            return Path(configured).expanduser()
        return self.config_dir.parent / "data"

    def validate(self):
        """Validate critical settings at startup.

        Raises:
            ConfigError: If the prefix is unusable or the dictionary
                file does not exist. The bot cannot answer anything
                useful without either.
        """
        prefix = self.command_prefix
        if not prefix or any(ch.isspace() for ch in prefix):
            raise ConfigError(
                "command_prefix must be a single non-empty word",
                key="command_prefix",
                value=prefix,
            )

        if not self.dictionary_path.exists():
            raise ConfigError(
                "dictionary file not found",
                key="dictionary_path",
                path=str(self.dictionary_path),
            )

        if not self.signal_account:
            logger.warning(
                "no_signal_account_configured",
                msg="First registered account will be used",
            )

    @property
    def signal_api_url(self) -> str:
        """Get Signal API URL. Env var SIGNAL_API_URL takes precedence."""
        return os.environ.get("SIGNAL_API_URL") or self.settings.get("signal_api_url", "http://127.0.0.1:8080")

    @property
    def signal_account(self) -> str:
        """Account (phone number) the bot runs as. Empty = autodetect."""
        return os.environ.get("SIGNAL_ACCOUNT") or self.settings.get("signal_account", "")

    @property
    def command_prefix(self) -> str:
        """First token a message must carry to be handled (default ``!coc``)."""
        return str(self.settings.get("command_prefix", "!coc"))

    @property
    def dictionary_path(self) -> Path:
        """JSON file with the term -> definition mapping.

        Env var COCBOT_DICTIONARY_PATH takes precedence over settings.yaml.
        """
        configured = os.environ.get("COCBOT_DICTIONARY_PATH") or self.settings.get("dictionary_path")
        if configured:
            return Path(configured).expanduser()
        return self.data_dir / "dictionary.json"

    @property
    def alias_db_path(self) -> Path:
        """SQLite file backing the alias store."""
        configured = self.settings.get("alias_db_path")
        if configured:
            return Path(configured).expanduser()
        return self.data_dir / "alias.db"

    @property
    def max_message_length(self) -> int:
        """Platform ceiling for one outbound reply (default 2000)."""
        return int(self.settings.get("max_message_length", 2000))

    @property
    def rate_limit_max_requests(self) -> int:
        """Max handled messages per sender per window (default 30)."""
        rate_config = self.settings.get("rate_limit", {})
        return rate_config.get("max_requests", 30)

    @property
    def rate_limit_window_seconds(self) -> int:
        """Length of the rate limit window in seconds (default 60)."""
        rate_config = self.settings.get("rate_limit", {})
        return rate_config.get("window_seconds", 60)

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return self.config_dir.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"store": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
