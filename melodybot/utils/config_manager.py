"""Configuration manager for MelodyBot."""
import logging
import os
from typing import Any, Dict, Optional
import yaml

from melodybot.core.errors import ConfigurationError

# 环境变量到配置键的映射
ENV_OVERRIDES = {
    'DISCORD_TOKEN': 'discord.token',
    'PREFIX': 'discord.command_prefix',
    'CLIENT_ID': 'discord.client_id',
    'SPOTIFY_CLIENT_ID': 'spotify.client_id',
    'SPOTIFY_CLIENT_SECRET': 'spotify.client_secret',
    'LOG_LEVEL': 'logging.level',
}

TOKEN_PLACEHOLDER = "YOUR_DISCORD_BOT_TOKEN_HERE"


class ConfigManager:
    """
    Configuration manager for MelodyBot.

    Environment variables win when DISCORD_TOKEN is set (production);
    otherwise the YAML settings file is required (development).
    """

    def __init__(self, config_path: str = "config/config.yaml", environ: Optional[Dict[str, str]] = None):
        """
        Initialize the ConfigManager.

        Args:
            config_path: Path to the configuration file
            environ: Environment mapping, defaults to os.environ

        Raises:
            FileNotFoundError: If no token is in the environment and the file does not exist
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        self.logger = logging.getLogger("melodybot.config")
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}
        self.source = "file"

        self._load_config()

    def _load_config(self) -> None:
        """
        Load configuration from the environment and/or the config file.

        Raises:
            FileNotFoundError: If the configuration file is required but missing
            yaml.YAMLError: If the configuration file is not valid YAML
        """
        use_env = bool(self.environ.get('DISCORD_TOKEN'))

        if os.path.exists(self.config_path):
            try:
                with open(self.config_path, 'r', encoding='utf-8') as config_file:
                    self.config = yaml.safe_load(config_file) or {}
                    self.logger.debug(f"Loaded configuration from {self.config_path}")
            except yaml.YAMLError as e:
                self.logger.error(f"Error parsing configuration file: {e}")
                raise
        elif not use_env:
            example_path = f"{self.config_path}.example"
            if os.path.exists(example_path):
                self.logger.error(
                    f"Configuration file {self.config_path} not found. "
                    f"Please copy {example_path} to {self.config_path} or set DISCORD_TOKEN."
                )
            else:
                self.logger.error(f"Configuration file {self.config_path} not found.")
            raise FileNotFoundError(f"Configuration file {self.config_path} not found")

        if use_env:
            self.source = "environment"
            for env_key, config_key in ENV_OVERRIDES.items():
                value = self.environ.get(env_key)
                if value:
                    self.set(config_key, value)
            self.logger.info("📡 Using environment variables for config")
        else:
            self.logger.info(f"📁 Using {self.config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.

        Args:
            key: The configuration key (dot notation for nested keys)
            default: Default value to return if the key is not found

        Returns:
            The configuration value or the default value if not found
        """
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                self.logger.debug(f"Configuration key '{key}' not found, using default: {default}")
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        node = self.config
        for k in keys[:-1]:
            if not isinstance(node.get(k), dict):
                node[k] = {}
            node = node[k]
        node[keys[-1]] = value

    def get_discord_token(self) -> str:
        """
        Get the Discord bot token.

        Raises:
            ConfigurationError: If the Discord bot token is not set
        """
        token = self.get('discord.token')
        if not token or token == TOKEN_PLACEHOLDER:
            self.logger.error("Discord bot token not set in configuration")
            raise ConfigurationError("Discord bot token not set in configuration")
        return str(token)

    def get_command_prefix(self) -> str:
        prefix = self.get('discord.command_prefix', '!')
        return str(prefix) if prefix else '!'

    def get_auto_shuffle_delay(self) -> float:
        """Seconds between a loop restart and the automatic reshuffle."""
        delay = self.get('music.auto_shuffle_delay', 2.0)
        try:
            return max(0.0, float(delay))
        except (TypeError, ValueError):
            self.logger.warning(f"Invalid music.auto_shuffle_delay: {delay}, using 2.0")
            return 2.0

    def get_queue_display_limit(self) -> int:
        return int(self.get('music.queue_display_limit', 10))

    def get_default_volume(self) -> int:
        volume = int(self.get('music.default_volume', 50))
        return min(100, max(0, volume))

    def get_ffmpeg_executable(self) -> str:
        return self.get('music.ffmpeg_path', 'ffmpeg')

    def get_spotify_credentials(self) -> Optional[Dict[str, str]]:
        """
        Get Spotify Web API client credentials.

        Returns:
            Dict with client_id and client_secret, or None if not configured
        """
        client_id = self.get('spotify.client_id')
        client_secret = self.get('spotify.client_secret')
        if client_id and client_secret:
            return {'client_id': str(client_id), 'client_secret': str(client_secret)}
        return None

    def get_log_level(self) -> str:
        return self.get('logging.level', 'INFO')

    def get_log_file(self) -> Optional[str]:
        return self.get('logging.file', None)

    def get_log_max_size(self) -> int:
        """
        Get the maximum log file size.

        Returns:
            The maximum log file size in bytes
        """
        return self.get('logging.max_size', 10485760)  # 10 MB

    def get_log_backup_count(self) -> int:
        return self.get('logging.backup_count', 5)
