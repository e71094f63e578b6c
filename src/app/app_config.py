"""Configuration management for Music Library Bridge."""

import os
from pathlib import Path

from dotenv import load_dotenv

from core.core_config import load_config as load_yaml_config
from core.models.config_models import AppConfig

DEFAULT_CONFIG_FILES = ["config.yaml", "my-config.yaml"]


class Config:
    """Configuration manager for the application."""

    def __init__(self, config_path: str | None = None) -> None:
        """Initialize configuration.

        Args:
            config_path: Path to the configuration file (use default if None)

        Raises:
            FileNotFoundError: If no path is given and no default file exists

        """
        if config_path is None:
            load_dotenv()
            # Try environment variable first, then try each default config file
            config_path = os.getenv("CONFIG_PATH")
        if config_path is None:
            for default_file in DEFAULT_CONFIG_FILES:
                if Path(default_file).exists():
                    config_path = default_file
                    break
            else:
                msg = (
                    f"No configuration file found. Checked CONFIG_PATH env var and files: {DEFAULT_CONFIG_FILES}. "
                    "Please create a config.yaml file or set CONFIG_PATH environment variable."
                )
                raise FileNotFoundError(msg)

        self.config_path = config_path
        self._resolved_path: str | None = None
        self._config: AppConfig | None = None

    def _resolve_config_path(self) -> str:
        """Resolve the configuration file path to an absolute path."""
        load_path = Path(os.path.expandvars(self.config_path)).expanduser()
        try:
            return str(load_path.resolve())
        except (OSError, ValueError):
            return str(load_path.absolute())

    def load(self) -> AppConfig:
        """Load configuration from the file.

        Returns:
            Validated configuration model

        Raises:
            RuntimeError: If the file cannot be read or validated

        """
        if self._config is None:
            load_path = Path(os.path.expandvars(self.config_path)).expanduser()
            try:
                self._config = load_yaml_config(str(load_path))
            except Exception as e:
                msg = f"Failed to load configuration from '{load_path}': {e}"
                raise RuntimeError(msg) from e
            self._resolved_path = self._resolve_config_path()
        return self._config

    @property
    def resolved_path(self) -> str:
        """Get the resolved absolute path to the configuration file."""
        if self._resolved_path is None:
            return self._resolve_config_path()
        return self._resolved_path
