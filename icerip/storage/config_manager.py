"""
Manages loading, validation, migration, and write-back of the INI settings file.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from icerip.exceptions import ConfigurationError
from icerip.models.config import RecorderConfig

log = logging.getLogger(__name__)

SECTION = "DEFAULT"


class ConfigManager:
    """Handles all operations related to the application's INI settings file."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> RecorderConfig:
        """
        Loads settings from the INI file, applies CLI overrides, and validates them.
        A missing file is not an error: defaults are used.

        Args:
            cli_options: A dictionary of options provided via the command line.

        Returns:
            A validated RecorderConfig object.

        Raises:
            ConfigurationError: If the file cannot be parsed or validation fails.
        """
        config_from_file: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Error parsing configuration file: {e}") from e

            if self._migrate_if_needed():
                log.info(
                    "[yellow]Configuration file was updated with new default values."
                    "[/yellow]"
                )
            config_from_file = self._get_config_as_dict()
        else:
            log.debug(f"No configuration file at '{self.config_file_path}'; using defaults.")

        if cli_options:
            config_from_file.update(cli_options)

        try:
            config_dir = self.config_file_path.parent
            return RecorderConfig(**config_from_file, config_path=str(config_dir))
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

    def save_config(self, config: RecorderConfig) -> None:
        """Writes every setting of `config` back to the INI file."""
        self.save_settings(config.model_dump(include=RecorderConfig.get_ini_keys()))

    def save_settings(self, settings: dict[str, Any]) -> None:
        """
        Saves a configuration file, filling keys missing from `settings` with
        the model defaults.
        """
        config = configparser.ConfigParser(interpolation=None)
        config[SECTION] = {}

        defaults = RecorderConfig.model_construct()
        for key in sorted(RecorderConfig.get_ini_keys()):
            value = settings.get(key, getattr(defaults, key, None))
            config[SECTION][key] = self._to_ini(value)

        try:
            self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file_path, "w", encoding="utf-8") as configfile:
                config.write(configfile)
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration file: {e}") from e

    @staticmethod
    def _to_ini(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if value is None:
            return ""
        return str(value)

    def _get_config_as_dict(self) -> dict[str, Any]:
        """Reads the settings section of the INI file into a dictionary."""
        section = self._parser[SECTION]
        try:
            return {
                "max_reconnect_attempts": section.getint("max_reconnect_attempts", 5),
                "filter_text": section.get("filter_text", ""),
                "save_path": section.get("save_path", ""),
                "stream_url": section.get("stream_url", ""),
                "max_buffer_bytes": section.getint(
                    "max_buffer_bytes", RecorderConfig.model_construct().max_buffer_bytes
                ),
                "file_extension": section.get("file_extension", "mp3"),
                "tag_files": section.getboolean("tag_files", False),
            }
        except ValueError as e:
            raise ConfigurationError(f"Invalid value in configuration file: {e}") from e

    def _migrate_if_needed(self) -> bool:
        """Adds missing default values to an existing config file."""
        defaults = RecorderConfig.model_construct()
        config_section = self._parser[SECTION]
        needs_saving = False

        for key in sorted(RecorderConfig.get_ini_keys()):
            if key not in config_section:
                config_section[key] = self._to_ini(getattr(defaults, key))
                needs_saving = True
                log.debug(
                    f"Migrating config: added missing key '{key}' with "
                    f"value '{config_section[key]}'."
                )

        if needs_saving:
            try:
                with open(self.config_file_path, "w", encoding="utf-8") as f:
                    self._parser.write(f)
            except OSError as e:
                log.error(f"Could not save migrated configuration file: {e}")
                return False

        return needs_saving
