"""
Manages loading, validation, and saving of the JSON configuration file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from modsync.exceptions import ConfigurationError
from modsync.models.config import SyncConfig

log = logging.getLogger(__name__)

# Environment variables take precedence over the file for credentials
ENV_OVERRIDES = {
    "MODSYNC_CURSEFORGE_API_KEY": "curseforge_api_key",
    "MODSYNC_GITHUB_TOKEN": "github_token",
}


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "modsync"


class ConfigManager:
    """Handles all operations related to the application's JSON config file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path

    def exists(self) -> bool:
        return self.config_file_path.is_file()

    def load_config(self, cli_options: dict[str, Any] | None = None) -> SyncConfig:
        """
        Loads configuration from the JSON file, applies overrides, and validates it.

        A missing file yields a default configuration with no profiles.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated SyncConfig object.

        Raises:
            ConfigurationError: If the config file is unreadable, invalid, or
            validation fails.
        """
        config_from_file = self._read_raw()

        for env_var, key in ENV_OVERRIDES.items():
            if value := os.getenv(env_var):
                config_from_file[key] = value

        if cli_options:
            config_from_file.update(cli_options)

        try:
            return SyncConfig(**config_from_file)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_config(self, config: SyncConfig) -> None:
        """
        Writes the configuration to disk, replacing the previous file whole.

        Credentials that came from the environment are not persisted.
        """
        data = config.model_dump(mode="json")
        on_disk = self._read_raw()
        for env_var, key in ENV_OVERRIDES.items():
            if os.getenv(env_var):
                data[key] = on_disk.get(key, "")

        tmp_path = self.config_file_path.with_suffix(".json.tmp")
        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.config_file_path)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e
        log.debug(f"Configuration saved to '{self.config_file_path}'.")

    def _read_raw(self) -> dict[str, Any]:
        """Reads the JSON file into a dictionary."""
        if not self.exists():
            log.debug(
                f"No configuration at '{self.config_file_path}', using defaults."
            )
            return {}
        try:
            with open(self.config_file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(f"Could not read configuration file: {e}") from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Error parsing configuration file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a JSON object at the top level."
            )
        return data
