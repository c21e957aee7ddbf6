"""
Configuration management for the HotUKDeals notifier.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..models.config import (
    AppConfiguration,
    Channel,
    FeedSettings,
    NotifierSettings,
    SearchTermConfig,
    UserSettings,
)

LOG_LEVEL_ENV_VAR = "HUKD_LOG_LEVEL"
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class ConfigurationManager:
    """Manages loading, validation, and reloading of application configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses default paths.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[AppConfiguration] = None
        self._last_modified: Optional[float] = None

    def _find_config_file(self) -> str:
        """Find the configuration file in standard locations."""
        possible_paths = [
            "config/config.yaml",
            "config/config.yml",
            "config/config.json",
            "config.yaml",
            "config.yml",
            "config.json",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        if os.path.exists("config/config.example.yaml"):
            raise ValueError(
                "No configuration file found. Please copy 'config/config.example.yaml' "
                "to 'config/config.yaml' and customize it for your needs."
            )

        raise ValueError(
            "No configuration file found. Please create a configuration file "
            "at one of these locations: " + ", ".join(possible_paths)
        )

    def _read_raw_config(self, config_path: str) -> Dict[str, Any]:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.endswith(".json"):
                raw_config = json.load(f)
            else:
                raw_config = yaml.safe_load(f)

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Configuration file must contain a mapping")
        return raw_config

    def load_config(self) -> AppConfiguration:
        """
        Load configuration from file.

        Returns:
            AppConfiguration with validated settings.

        Raises:
            ValueError: If configuration is invalid or file cannot be read.
            FileNotFoundError: If configuration file doesn't exist.
        """
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            raw_config = self._read_raw_config(self.config_path)
            raw_config = self._expand_env_vars(raw_config)
            config = self._parse_config(raw_config)
            config.validate()
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e
        except ValueError:
            raise
        except Exception as e:
            raise ValueError(f"Error loading configuration: {e}") from e

        self._config = config
        self._last_modified = os.path.getmtime(self.config_path)
        return config

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR_NAME} references in configuration values."""
        if isinstance(obj, dict):
            return {key: self._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            return ENV_VAR_PATTERN.sub(self._lookup_env_var, obj)
        else:
            return obj

    @staticmethod
    def _lookup_env_var(match: "re.Match") -> str:
        var_name = match.group(1)
        env_value = os.getenv(var_name)
        if env_value is None:
            raise ValueError(f"Environment variable '{var_name}' not found")
        return env_value

    def _parse_config(self, raw_config: Dict[str, Any]) -> AppConfiguration:
        """Parse raw configuration dictionary into AppConfiguration."""
        try:
            feed_data = raw_config.get("feed") or {}
            feed_defaults = FeedSettings()
            feed = FeedSettings(
                base_url=feed_data.get("base_url", feed_defaults.base_url),
                timeout=feed_data.get("timeout", feed_defaults.timeout),
                max_retries=feed_data.get("max_retries", feed_defaults.max_retries),
                user_agent=feed_data.get("user_agent", feed_defaults.user_agent),
            )

            notifier_data = raw_config.get("notifier") or {}
            defaults = NotifierSettings()
            notifier = NotifierSettings(
                config_cache_ttl=notifier_data.get(
                    "config_cache_ttl", defaults.config_cache_ttl
                ),
                quiet_hours_window_minutes=notifier_data.get(
                    "quiet_hours_window_minutes", defaults.quiet_hours_window_minutes
                ),
                message_delay=float(
                    notifier_data.get("message_delay", defaults.message_delay)
                ),
                max_embeds_per_message=notifier_data.get(
                    "max_embeds_per_message", defaults.max_embeds_per_message
                ),
                channel_timeout=float(
                    notifier_data.get("channel_timeout", defaults.channel_timeout)
                ),
                polling_interval=notifier_data.get(
                    "polling_interval", defaults.polling_interval
                ),
            )

            storage_data = raw_config.get("storage") or {}
            logging_data = raw_config.get("logging") or {}
            log_level = os.getenv(LOG_LEVEL_ENV_VAR) or logging_data.get("level", "INFO")

            return AppConfiguration(
                feed=feed,
                notifier=notifier,
                history_file=storage_data.get("history_file"),
                log_level=log_level,
                log_directory=logging_data.get("directory", "logs"),
                channels=[
                    Channel.from_dict(item) for item in raw_config.get("channels") or []
                ],
                users=[
                    UserSettings.from_dict(item) for item in raw_config.get("users") or []
                ],
                search_terms=[
                    SearchTermConfig.from_dict(item)
                    for item in raw_config.get("search_terms") or []
                ],
            )

        except KeyError as e:
            raise ValueError(f"Missing required configuration key: {e}") from e
        except (TypeError, AttributeError) as e:
            raise ValueError(f"Error parsing configuration: {e}") from e

    def get_config(self) -> AppConfiguration:
        """
        Get current configuration, loading if necessary.

        Returns:
            Current configuration object.
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_if_changed(self) -> bool:
        """
        Reload configuration if file has been modified.

        Returns:
            True if configuration was reloaded, False otherwise.
        """
        if not os.path.exists(self.config_path):
            return False

        current_modified = os.path.getmtime(self.config_path)

        if self._last_modified is None or current_modified > self._last_modified:
            try:
                self.load_config()
                return True
            except ValueError:
                # Keep the current config when the edited file is invalid
                return False

        return False

    def validate_config_file(self, config_path: str) -> bool:
        """
        Validate a configuration file without loading it.

        Missing environment variables are tolerated so a file can be checked
        on a machine without the deployment secrets.

        Raises:
            ValueError: If configuration is invalid with detailed error message.
        """
        if not Path(config_path).exists():
            raise ValueError(f"Configuration file not found: {config_path}")

        try:
            raw_config = self._read_raw_config(config_path)
            try:
                raw_config = self._expand_env_vars(raw_config)
            except ValueError:
                pass

            config = self._parse_config(raw_config)
            config.validate()
            return True

        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}") from e
